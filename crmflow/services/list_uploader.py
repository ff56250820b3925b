import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..config import (
    UPLOAD_BACKOFF_BASE,
    UPLOAD_BACKOFF_CAP,
    UPLOAD_CHUNK_DELAY,
    UPLOAD_CHUNK_SCHEDULE,
    UPLOAD_MAX_ATTEMPTS,
)
from ..core.batching import progressive_chunks
from ..core.hubspot_client import HubSpotClient
from ..core.models import Identifier
from ..core.pacing import Backoff, Clock

logger = logging.getLogger(__name__)


@dataclass
class FailedChunk:
    index: int
    contacts: List[Identifier]
    error: str


@dataclass
class UploadReport:
    """Outcome of pushing contacts into a list; failed chunks are reported, not raised."""

    list_id: str
    success_count: int = 0
    failed_chunks: List[FailedChunk] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return sum(len(c.contacts) for c in self.failed_chunks)

    @property
    def partial(self) -> bool:
        return bool(self.failed_chunks)


class ListUploader:
    """Add contacts to a static list in progressively sized chunks"""

    def __init__(
        self,
        hubspot: HubSpotClient,
        *,
        schedule: Sequence[int] = tuple(UPLOAD_CHUNK_SCHEDULE),
        max_attempts: int = UPLOAD_MAX_ATTEMPTS,
        chunk_delay: float = UPLOAD_CHUNK_DELAY,
        backoff: Optional[Backoff] = None,
        clock: Optional[Clock] = None,
    ):
        self.hubspot = hubspot
        self.schedule = list(schedule)
        self.max_attempts = max(1, max_attempts)
        self.chunk_delay = chunk_delay
        self.backoff = backoff or Backoff(UPLOAD_BACKOFF_BASE, UPLOAD_BACKOFF_CAP)
        self.clock = clock or Clock()

    async def upload(self, list_id: str, contacts: Sequence[Identifier]) -> UploadReport:
        report = UploadReport(list_id=str(list_id))
        if not contacts:
            return report

        chunks = progressive_chunks(list(contacts), self.schedule)
        for index, chunk in enumerate(chunks):
            error = await self._upload_chunk(list_id, chunk)
            if error is None:
                report.success_count += len(chunk)
                logger.info(f"Added chunk of {len(chunk)} contacts to list {list_id}")
                await self.clock.sleep(self.chunk_delay)
            else:
                logger.error(
                    f"Chunk {index + 1}/{len(chunks)} ({len(chunk)} contacts) failed for list "
                    f"{list_id} after {self.max_attempts} attempts: {error}"
                )
                report.failed_chunks.append(FailedChunk(index=index, contacts=chunk, error=error))

        if report.partial:
            logger.warning(
                f"Partial upload to list {list_id}: {report.success_count} added, "
                f"{report.failed_count} failed in {len(report.failed_chunks)} chunks"
            )
        return report

    async def _upload_chunk(self, list_id: str, chunk: List[Identifier]) -> Optional[str]:
        """Return None on success or the last error message after all attempts."""
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.hubspot.add_contacts_to_list(list_id, chunk)
                return None
            except Exception as e:
                last_error = str(e)
                logger.warning(
                    f"Failed to add {len(chunk)} contacts to list {list_id} "
                    f"(attempt {attempt}/{self.max_attempts}): {e}"
                )
                if attempt < self.max_attempts:
                    await self.clock.sleep(self.backoff.delay(attempt))
        return last_error
