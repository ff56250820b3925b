import logging
from typing import List, Optional

from ..config import (
    FETCH_BACKOFF_BASE,
    FETCH_BACKOFF_CAP,
    FETCH_PAGE_DELAY,
    MAX_RETRIES,
    RETRIEVAL_BATCH_SIZE,
)
from ..core.exceptions import FetchExhausted, TransientFetchError
from ..core.hubspot_client import HubSpotClient
from ..core.models import Identifier
from ..core.pacing import Backoff, Clock

logger = logging.getLogger(__name__)


class ContactFetcher:
    """Retrieve the contact vids of a HubSpot list with paging, retries and backoff"""

    def __init__(
        self,
        hubspot: HubSpotClient,
        *,
        page_size: int = RETRIEVAL_BATCH_SIZE,
        max_retries: int = MAX_RETRIES,
        page_delay: float = FETCH_PAGE_DELAY,
        backoff: Optional[Backoff] = None,
        clock: Optional[Clock] = None,
    ):
        self.hubspot = hubspot
        self.page_size = page_size
        self.max_retries = max_retries
        self.page_delay = page_delay
        self.backoff = backoff or Backoff(FETCH_BACKOFF_BASE, FETCH_BACKOFF_CAP)
        self.clock = clock or Clock()

    async def fetch(self, list_id: str, max_count: Optional[int] = None) -> List[Identifier]:
        """
        Fetch up to `max_count` unique contact vids from a list.

        Returns whatever was collected if the retry limit is hit after at
        least one page succeeded.

        Raises:
            FetchExhausted: retry limit reached with nothing collected
        """
        limit = max_count if max_count is not None else float("inf")
        contacts: List[Identifier] = []
        if limit <= 0:
            return contacts

        offset = None
        error_count = 0
        last_error: Optional[TransientFetchError] = None

        while len(contacts) < limit:
            count_to_fetch = int(min(self.page_size, limit - len(contacts)))
            try:
                page = self.hubspot.get_list_contacts_page(list_id, count=count_to_fetch, vid_offset=offset)
            except Exception as e:
                error_count += 1
                last_error = TransientFetchError(str(e), attempt=error_count)
                logger.warning(
                    f"Error fetching contacts from list {list_id} "
                    f"(attempt {error_count}/{self.max_retries}): {e}"
                )
                if error_count >= self.max_retries:
                    if contacts:
                        logger.warning(
                            f"Giving up on list {list_id} after {error_count} attempts; "
                            f"returning {len(contacts)} contacts collected so far"
                        )
                        break
                    raise FetchExhausted(list_id, str(last_error)) from e
                await self.clock.sleep(self.backoff.delay(error_count))
                continue

            error_count = 0
            contacts.extend(page.contacts)
            offset = page.vid_offset

            if len(contacts) >= limit:
                contacts = contacts[:int(limit)]
                break
            if not page.has_more or not page.contacts:
                break

            await self.clock.sleep(self.page_delay)

        unique = list(dict.fromkeys(contacts))
        logger.info(f"Fetched {len(unique)} contacts from list {list_id}")
        return unique
