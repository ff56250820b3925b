"""
Build one campaign list: pick unused contacts, create the HubSpot list,
populate it, stamp contact properties and write the audit row.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from ..config import MIN_FETCH_COUNT, OVERFETCH_FACTOR
from ..core.dates import format_list_date
from ..core.exceptions import FetchExhausted, PersistenceFailure
from ..core.hubspot_client import HubSpotClient
from ..core.models import (
    CampaignConfig,
    CampaignDetails,
    CreatedListRecord,
    FilterCriteria,
    Identifier,
)
from ..database.supabase_client import SupabaseClient
from .contact_fetcher import ContactFetcher
from .list_uploader import ListUploader, UploadReport
from .property_updater import ContactPropertyUpdater, PropertyUpdateReport

logger = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    """Everything known about one campaign allocation."""

    campaign: str
    list_name: str
    list_id: str
    contact_count: int
    requested_count: int
    available_count: int
    filtered_count: int
    fulfillment_percentage: int
    primary_fetched: int = 0
    primary_available: int = 0
    secondary_fetched: int = 0
    secondary_available: int = 0
    selected: List[Identifier] = field(default_factory=list, repr=False)
    send_list_upload: Optional[UploadReport] = None
    list_upload: Optional[UploadReport] = None
    property_update: Optional[PropertyUpdateReport] = None
    record: Optional[Dict[str, Any]] = None


def fetch_target(count: int) -> int:
    return max(OVERFETCH_FACTOR * count, MIN_FETCH_COUNT)


def fulfillment_percentage(selected: int, requested: int) -> int:
    if requested <= 0:
        return 0
    # halves round up
    return int(100 * selected / requested + 0.5)


def build_list_name(config: CampaignConfig) -> str:
    return f"{config.brand} - {config.campaign} - {config.domain} - {format_list_date(config.date)}"


class CampaignAllocator:
    """Allocate contacts to a single campaign list"""

    def __init__(
        self,
        hubspot: HubSpotClient,
        db: SupabaseClient,
        *,
        fetcher: Optional[ContactFetcher] = None,
        uploader: Optional[ListUploader] = None,
        property_updater: Optional[ContactPropertyUpdater] = None,
    ):
        self.hubspot = hubspot
        self.db = db
        self.fetcher = fetcher or ContactFetcher(hubspot)
        self.uploader = uploader or ListUploader(hubspot)
        self.property_updater = property_updater or ContactPropertyUpdater(hubspot)

    async def _available_from(
        self,
        list_id: str,
        max_count: int,
        used: Set[Identifier],
    ) -> Tuple[int, List[Identifier]]:
        try:
            contacts = await self.fetcher.fetch(list_id, max_count)
        except FetchExhausted as e:
            logger.error(f"{e}; continuing with no contacts from this list")
            contacts = []
        available = [vid for vid in contacts if vid not in used]
        return len(contacts), available

    async def allocate(
        self,
        config: CampaignConfig,
        used: Set[Identifier],
        filter_criteria: Optional[FilterCriteria] = None,
    ) -> AllocationResult:
        """
        Allocate up to `config.count` contacts not yet in `used`.

        `used` is updated in place with the selection. The destination list is
        created and the audit row written even when nothing was selected.
        """
        count = config.count
        logger.info(f"Starting campaign: {config.campaign} | Brand: {config.brand} | Domain: {config.domain}")

        primary_fetched, primary = await self._available_from(
            config.primary_list_id, fetch_target(count), used
        )
        logger.info(
            f"Primary List: {primary_fetched} available | {primary_fetched - len(primary)} filtered "
            f"| {len(primary)} remaining"
        )

        secondary_fetched, secondary = 0, []
        if len(primary) < count and config.secondary_list_id:
            secondary_fetched, secondary = await self._available_from(
                config.secondary_list_id, fetch_target(count - len(primary)), used
            )
            logger.info(
                f"Secondary List: {secondary_fetched} available | {secondary_fetched - len(secondary)} "
                f"filtered | {len(secondary)} remaining"
            )

        # primary first; secondary only tops up
        selected = list(dict.fromkeys(primary + secondary))[:max(count, 0)]
        used.update(selected)

        percentage = fulfillment_percentage(len(selected), count)
        logger.info(f"Final Selection: {len(selected)} of {count} requested ({percentage}%)")

        list_name = build_list_name(config)
        new_list = self.hubspot.create_static_list(list_name)
        list_id = new_list["list_id"]

        result = AllocationResult(
            campaign=config.campaign,
            list_name=list_name,
            list_id=list_id,
            contact_count=len(selected),
            requested_count=count,
            available_count=primary_fetched + secondary_fetched,
            filtered_count=(primary_fetched - len(primary)) + (secondary_fetched - len(secondary)),
            fulfillment_percentage=percentage,
            primary_fetched=primary_fetched,
            primary_available=len(primary),
            secondary_fetched=secondary_fetched,
            secondary_available=len(secondary),
            selected=selected,
        )

        if selected:
            await self._apply_side_effects(config, result)

        record = CreatedListRecord(
            name=list_name,
            list_id=list_id,
            deleted=new_list.get("deleted", False),
            filter_criteria=filter_criteria or FilterCriteria(),
            campaign_details=CampaignDetails(brand=config.brand, campaign=config.campaign, date=config.date),
            contact_count=result.contact_count,
            requested_count=result.requested_count,
            available_count=result.available_count,
            filtered_count=result.filtered_count,
            fulfillment_percentage=percentage,
        )
        try:
            result.record = self.db.insert_created_list(record)
        except PersistenceFailure as e:
            logger.error(f"List {list_name} was created in HubSpot but not recorded: {e}")

        logger.info(f"List created: {list_name} | ID: {list_id}")
        return result

    async def _apply_side_effects(self, config: CampaignConfig, result: AllocationResult) -> None:
        """Send-list upload, destination upload and property stamping; each runs regardless of the others."""
        if config.send_contact_list_id:
            try:
                result.send_list_upload = await self.uploader.upload(config.send_contact_list_id, result.selected)
            except Exception as e:
                logger.error(f"Failed to add contacts to send list {config.send_contact_list_id}: {e}")

        try:
            result.list_upload = await self.uploader.upload(result.list_id, result.selected)
        except Exception as e:
            logger.error(f"Failed to add contacts to list {result.list_id}: {e}")

        try:
            result.property_update = await self.property_updater.update_properties(
                result.selected, config.date, config.last_marketing_email_sent_brand
            )
        except Exception as e:
            logger.error(f"Failed to update contact properties for {result.list_name}: {e}")
