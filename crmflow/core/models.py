"""
Pydantic models for campaign configs, audit records and HubSpot emails.
"""

from typing import Any, Dict, List, Optional, Union
import datetime as dt
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field
from pydantic import ConfigDict
from pydantic import field_validator

Identifier = Union[int, str]


class CloneStrategy(str, Enum):
    """Send-slot allocation policies"""
    SMART = "smart"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    CUSTOM = "custom"


class ModeFilter(str, Enum):
    """Campaign modes selectable for a list-creation run"""
    BAU = "BAU"
    RE_ENGAGEMENT = "re-engagement"
    RE_ACTIVATION = "re-activation"


class CloneStatus(str, Enum):
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CampaignConfig(BaseModel):
    """One row of the segmentation table describing a list to build"""
    model_config = ConfigDict(extra="ignore")

    brand: str
    campaign: str
    primary_list_id: str
    secondary_list_id: Optional[str] = None
    count: int
    domain: str
    date: dt.date
    send_contact_list_id: Optional[str] = None
    last_marketing_email_sent_brand: Optional[str] = None
    order: int = 0

    @field_validator("primary_list_id", "secondary_list_id", "send_contact_list_id", mode="before")
    @classmethod
    def stringify_ids(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value: Any) -> Any:
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        return value


class FilterCriteria(BaseModel):
    days: Optional[str] = None
    mode: Optional[str] = None


class CampaignDetails(BaseModel):
    brand: str
    campaign: str
    date: dt.date


class CreatedListRecord(BaseModel):
    """Audit row written once per campaign allocation"""
    name: str
    list_id: str
    created_date: datetime = Field(default_factory=_utcnow)
    deleted: bool = False
    filter_criteria: FilterCriteria = Field(default_factory=FilterCriteria)
    campaign_details: CampaignDetails
    contact_count: int = Field(ge=0)
    requested_count: int
    available_count: int = Field(ge=0)
    filtered_count: int = Field(ge=0)
    fulfillment_percentage: int = Field(ge=0)

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ClonedEmailRecord(BaseModel):
    """Audit row written after a successful clone + update"""
    original_email_id: str
    cloned_email_id: str
    cloned_email_name: str
    scheduled_time: datetime
    cloning_strategy: CloneStrategy = CloneStrategy.SMART
    status: CloneStatus = CloneStatus.SCHEDULED
    published_at: Optional[datetime] = None

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class EmailObject(BaseModel):
    """A HubSpot marketing email with custom properties already located"""
    id: str
    name: str = ""
    state: Optional[str] = None
    custom_properties: Dict[str, Any] = Field(default_factory=dict)
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)


class ContactPage(BaseModel):
    """One page of list membership"""
    contacts: List[Identifier] = Field(default_factory=list)
    has_more: bool = False
    vid_offset: Optional[Identifier] = None
