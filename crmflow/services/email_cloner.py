"""
Clone marketing emails across future days.

Each (day, source email) pair gets a date-shifted name and a send slot. Names
already taken (earlier in this run, in the cloned_emails table, or in HubSpot)
are skipped; the rest are cloned in small concurrent groups, renamed,
re-targeted and scheduled without being published.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set
from zoneinfo import ZoneInfo

from ..config import (
    CLONE_BATCH_DELAY,
    CLONE_CONCURRENCY,
    CLONE_MAILING_ILS_LISTS_EXCLUDED,
    CLONE_MAILING_ILS_LISTS_INCLUDED,
    CLONE_MAILING_LISTS_EXCLUDED,
    CLONE_MAILING_LISTS_INCLUDED,
    CLONE_TIMEZONE,
    EXISTENCE_CHECK_CONCURRENCY,
    EXISTENCE_CHECK_DELAY,
)
from ..core.dates import shift_name_date
from ..core.exceptions import PersistenceFailure
from ..core.hubspot_client import HubSpotClient
from ..core.models import ClonedEmailRecord, CloneStrategy, EmailObject
from ..core.pacing import Clock
from ..core.scheduling import CustomSlotOptions, compute_slot, slot_datetime, to_epoch_ms
from ..database.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class CloneRun:
    """Names claimed during one cloning run."""

    def __init__(self, names: Optional[Iterable[str]] = None):
        self._names: Set[str] = set(names or ())

    def __contains__(self, name: str) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def claim(self, name: str) -> bool:
        """Reserve `name`; False if it was already taken. Must not await between check and insert."""
        if name in self._names:
            return False
        self._names.add(name)
        return True

    def release(self, name: str) -> None:
        self._names.discard(name)


@dataclass
class CloneOptions:
    custom_slots: Optional[CustomSlotOptions] = None
    timezone: str = CLONE_TIMEZONE
    clone_concurrency: int = CLONE_CONCURRENCY
    clone_batch_delay: float = CLONE_BATCH_DELAY
    check_concurrency: int = EXISTENCE_CHECK_CONCURRENCY
    check_batch_delay: float = EXISTENCE_CHECK_DELAY

    def tz(self) -> tzinfo:
        if self.timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class ClonePlan:
    source_id: str
    day_offset: int
    name: str
    scheduled_time: datetime
    custom_properties: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass
class CloneStats:
    total_attempted: int = 0
    successfully_cloned: int = 0
    duplicates_skipped: int = 0
    errors: int = 0
    cloned_emails: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Email cloning completed. {self.successfully_cloned} cloned, "
            f"{self.duplicates_skipped} duplicates skipped, {self.errors} errors."
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalAttempted": self.total_attempted,
            "successfullyCloned": self.successfully_cloned,
            "duplicatesSkipped": self.duplicates_skipped,
            "errors": self.errors,
            "clonedEmails": list(self.cloned_emails),
        }


def build_clone_update(plan: ClonePlan) -> Dict[str, Any]:
    """PUT payload that renames, re-targets and schedules a freshly cloned email."""
    payload: Dict[str, Any] = {
        "name": plan.name,
        "mailingIlsListsExcluded": list(CLONE_MAILING_ILS_LISTS_EXCLUDED),
        "mailingIlsListsIncluded": list(CLONE_MAILING_ILS_LISTS_INCLUDED),
        "mailingListsExcluded": list(CLONE_MAILING_LISTS_EXCLUDED),
        "mailingListsIncluded": list(CLONE_MAILING_LISTS_INCLUDED),
        "publishImmediately": False,
        "publishDate": to_epoch_ms(plan.scheduled_time),
        "isGraymailSuppressionEnabled": False,
    }
    for key, value in plan.custom_properties.items():
        if value is not None:
            payload[key] = value
    return payload


class EmailCloner:
    """Clone-and-schedule pipeline for marketing emails"""

    def __init__(
        self,
        hubspot: HubSpotClient,
        db: SupabaseClient,
        *,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.hubspot = hubspot
        self.db = db
        self.clock = clock or Clock()
        self.logger = logger or logging.getLogger(f"{__name__}.cloner")

    async def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args))

    async def clone_and_schedule(
        self,
        email_ids: Sequence[str],
        day_count: int,
        strategy: CloneStrategy = CloneStrategy.SMART,
        options: Optional[CloneOptions] = None,
        run: Optional[CloneRun] = None,
    ) -> CloneStats:
        """
        Clone every source email for days 1..`day_count`.

        Args:
            email_ids: Source HubSpot email IDs, in slot order
            day_count: Number of future days to clone for
            strategy: Send-slot allocation policy
            options: Concurrency, pacing, timezone and custom slot layout
            run: Names already claimed by the caller; a fresh one is used when omitted

        Returns:
            CloneStats with attempted/cloned/duplicate/error counts
        """
        strategy = CloneStrategy(strategy)
        options = options or CloneOptions()
        run = run if run is not None else CloneRun()
        stats = CloneStats()

        sources = await self._load_sources(email_ids)
        plans = self._plan(email_ids, day_count, strategy, options, sources, stats)
        plans = await self._drop_duplicates(plans, run, options, stats)

        width = max(1, options.clone_concurrency)
        for start in range(0, len(plans), width):
            group = plans[start:start + width]
            outcomes = await asyncio.gather(*(self._clone_one(plan, strategy, run) for plan in group))
            for outcome in outcomes:
                if outcome["status"] == "cloned":
                    stats.successfully_cloned += 1
                    stats.cloned_emails.append(outcome["email"])
                elif outcome["status"] == "duplicate":
                    stats.duplicates_skipped += 1
                else:
                    stats.errors += 1
            if start + width < len(plans):
                await self.clock.sleep(options.clone_batch_delay)

        self.logger.info(stats.message)
        return stats

    async def _load_sources(self, email_ids: Sequence[str]) -> Dict[str, Optional[EmailObject]]:
        sources: Dict[str, Optional[EmailObject]] = {}
        for email_id in dict.fromkeys(str(e) for e in email_ids):
            try:
                sources[email_id] = await self._call(self.hubspot.get_email, email_id)
            except Exception as e:
                self.logger.error(f"Error loading email {email_id}: {e}")
                sources[email_id] = None
        return sources

    def _plan(
        self,
        email_ids: Sequence[str],
        day_count: int,
        strategy: CloneStrategy,
        options: CloneOptions,
        sources: Dict[str, Optional[EmailObject]],
        stats: CloneStats,
    ) -> List[ClonePlan]:
        tz = options.tz()
        plans: List[ClonePlan] = []
        for day in range(1, day_count + 1):
            for index, email_id in enumerate(email_ids):
                stats.total_attempted += 1
                source = sources.get(str(email_id))
                if source is None:
                    stats.errors += 1
                    continue

                shifted = shift_name_date(source.name, day)
                if shifted is None:
                    self.logger.warning(f"Skipped {email_id}: no date in original email name {source.name!r}")
                    stats.errors += 1
                    continue

                new_name, new_date = shifted
                hour, minute = compute_slot(strategy, index, options.custom_slots)
                plans.append(ClonePlan(
                    source_id=str(email_id),
                    day_offset=day,
                    name=new_name,
                    scheduled_time=slot_datetime(new_date, hour, minute, tz),
                    custom_properties=dict(source.custom_properties),
                ))
        return plans

    async def _drop_duplicates(
        self,
        plans: List[ClonePlan],
        run: CloneRun,
        options: CloneOptions,
        stats: CloneStats,
    ) -> List[ClonePlan]:
        fresh = []
        for plan in plans:
            if plan.name in run:
                self.logger.info(f"Skipped: {plan.name!r} already in current batch cache")
                stats.duplicates_skipped += 1
            else:
                fresh.append(plan)

        names = list(dict.fromkeys(p.name for p in fresh))
        in_db = await self._call(self.db.find_existing_clone_names, names) if names else set()
        pending = [n for n in names if n not in in_db]
        in_hubspot = await self._existing_in_hubspot(pending, options)

        survivors = []
        for plan in fresh:
            if plan.name in in_db:
                self.logger.info(f"Skipped: {plan.name!r} already exists in database")
                stats.duplicates_skipped += 1
            elif plan.name in in_hubspot:
                self.logger.info(f"Skipped: {plan.name!r} already exists in HubSpot")
                stats.duplicates_skipped += 1
            else:
                survivors.append(plan)
        return survivors

    async def _existing_in_hubspot(self, names: List[str], options: CloneOptions) -> Set[str]:
        width = max(1, options.check_concurrency)
        existing: Set[str] = set()
        for start in range(0, len(names), width):
            batch = names[start:start + width]
            results = await asyncio.gather(
                *(self._call(self.hubspot.email_exists, name) for name in batch),
                return_exceptions=True,
            )
            for name, result in zip(batch, results):
                if isinstance(result, Exception):
                    # allow the clone attempt when the search itself fails
                    self.logger.error(f"Error checking email existence for {name!r}: {result}")
                elif result:
                    existing.add(name)
            if start + width < len(names):
                await self.clock.sleep(options.check_batch_delay)
        return existing

    async def _clone_one(self, plan: ClonePlan, strategy: CloneStrategy, run: CloneRun) -> Dict[str, Any]:
        if not run.claim(plan.name):
            self.logger.info(f"Skipped: {plan.name!r} already claimed in this run")
            return {"status": "duplicate"}

        self.logger.info(f"Processing email: {plan.source_id} -> {plan.name!r}")
        try:
            cloned = await self._call(self.hubspot.clone_email, plan.source_id)
            cloned_id = str(cloned["id"])
            await self._call(self.hubspot.update_email, cloned_id, build_clone_update(plan))
        except Exception as e:
            run.release(plan.name)
            self.logger.error(f"Error cloning email {plan.source_id}: {e}")
            return {"status": "error", "error": str(e)}

        record = ClonedEmailRecord(
            original_email_id=plan.source_id,
            cloned_email_id=cloned_id,
            cloned_email_name=plan.name,
            scheduled_time=plan.scheduled_time,
            cloning_strategy=strategy,
        )
        try:
            await self._call(self.db.insert_cloned_email, record)
        except PersistenceFailure as e:
            self.logger.error(f"Cloned {plan.name!r} in HubSpot but failed to record it: {e}")

        self.logger.info(f"Successfully cloned: {plan.name!r} (ID: {cloned_id})")
        return {
            "status": "cloned",
            "email": {
                "id": cloned_id,
                "name": plan.name,
                "time": plan.scheduled_time.isoformat(),
            },
        }
