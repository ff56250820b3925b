import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..config import (
    LAST_SENT_BRAND_PROPERTY,
    LAST_SENT_DATE_PROPERTY,
    PROPERTY_UPDATE_CHUNK_SIZE,
    PROPERTY_UPDATE_DELAY,
)
from ..core.batching import chunk_list
from ..core.dates import DateLike, epoch_midnight_ms
from ..core.hubspot_client import HubSpotClient
from ..core.models import Identifier
from ..core.pacing import Clock

logger = logging.getLogger(__name__)


@dataclass
class PropertyUpdateReport:
    updated: int = 0
    failed: List[Identifier] = field(default_factory=list)


class ContactPropertyUpdater:
    """Stamp last-sent date/brand on contacts in fixed-size batch updates"""

    def __init__(
        self,
        hubspot: HubSpotClient,
        *,
        chunk_size: int = PROPERTY_UPDATE_CHUNK_SIZE,
        chunk_delay: float = PROPERTY_UPDATE_DELAY,
        date_property: str = LAST_SENT_DATE_PROPERTY,
        brand_property: str = LAST_SENT_BRAND_PROPERTY,
        clock: Optional[Clock] = None,
    ):
        self.hubspot = hubspot
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self.date_property = date_property
        self.brand_property = brand_property
        self.clock = clock or Clock()

    async def update_properties(
        self,
        contacts: Sequence[Identifier],
        effective_date: DateLike,
        brand_value: Optional[str],
    ) -> PropertyUpdateReport:
        report = PropertyUpdateReport()
        if not contacts:
            return report

        epoch_time = epoch_midnight_ms(effective_date)
        logger.info(f"Updating properties for {len(contacts)} contacts")

        for chunk in chunk_list(list(contacts), self.chunk_size):
            inputs = [
                {
                    "id": str(contact_id),
                    "properties": {
                        self.date_property: epoch_time,
                        self.brand_property: brand_value,
                    },
                }
                for contact_id in chunk
            ]
            try:
                self.hubspot.batch_update_contacts(inputs)
                report.updated += len(chunk)
                logger.info(f"Updated batch of {len(chunk)} contacts")
            except Exception as e:
                report.failed.extend(chunk)
                logger.error(f"Failed batch update: {e}")
                logger.error(f"Failing IDs: {chunk}")

            await self.clock.sleep(self.chunk_delay)

        return report
