"""Reusable automation tasks shared by the CLI scripts."""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..config import VALID_DAYS_FILTERS, VALID_MODE_FILTERS, get_inter_list_delay
from ..core.dates import resolve_filter_date
from ..core.exceptions import InvalidFilterError, NoCampaignsFound
from ..core.hubspot_client import HubSpotClient
from ..core.models import CampaignConfig, CloneStrategy, FilterCriteria, ModeFilter
from ..core.pacing import Clock
from ..database.supabase_client import SupabaseClient
from ..services.campaign_allocator import CampaignAllocator
from ..services.campaign_runner import CampaignRunner, RunReport
from ..services.contact_fetcher import ContactFetcher
from ..services.email_cloner import CloneOptions, CloneRun, CloneStats, EmailCloner
from ..services.list_uploader import ListUploader
from ..services.property_updater import ContactPropertyUpdater


logger = logging.getLogger(__name__)


def validate_filters(days_filter: Optional[str], mode_filter: Optional[str]) -> None:
    if not days_filter or days_filter not in VALID_DAYS_FILTERS:
        raise InvalidFilterError("days", days_filter, VALID_DAYS_FILTERS)
    if not mode_filter or mode_filter not in VALID_MODE_FILTERS:
        raise InvalidFilterError("mode", mode_filter, VALID_MODE_FILTERS)


def matches_mode(campaign_name: str, mode_filter: str) -> bool:
    """
    re-engagement / re-activation match campaigns carrying that token;
    BAU matches campaigns carrying neither. Case-insensitive.
    """
    name = (campaign_name or "").lower()
    mode = ModeFilter(mode_filter)
    if mode == ModeFilter.BAU:
        return ModeFilter.RE_ENGAGEMENT.value not in name and ModeFilter.RE_ACTIVATION.value not in name
    return mode.value in name


def load_campaign_configs(
    db: SupabaseClient,
    days_filter: str,
    mode_filter: str,
    *,
    today: Optional[date] = None,
) -> List[CampaignConfig]:
    """Segmentation rows matching the filters, ordered by `order`."""
    validate_filters(days_filter, mode_filter)
    filter_date = resolve_filter_date(days_filter, today=today)
    rows = db.get_campaign_configs(filter_date)

    configs = []
    for row in rows:
        try:
            config = CampaignConfig.model_validate(row)
        except ValueError as exc:
            logger.warning("Skipping invalid segmentation row %s: %s", row.get("id"), exc)
            continue
        if matches_mode(config.campaign, mode_filter):
            configs.append(config)

    configs.sort(key=lambda c: c.order)
    return configs


def estimate_completion(campaign_count: int, delay_seconds: float) -> str:
    total_minutes = math.ceil(campaign_count * delay_seconds / 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours} hrs {minutes} mins"


def describe_plan(configs: Sequence[CampaignConfig], delay_seconds: float) -> Dict[str, Any]:
    """Summary shown before a run starts."""
    return {
        "count": len(configs),
        "first_campaign": configs[0].campaign if configs else "None",
        "total_contacts_requested": sum(c.count for c in configs),
        "delay_minutes": delay_seconds / 60,
        "estimated_completion_time": estimate_completion(len(configs), delay_seconds),
    }


async def create_lists(
    days_filter: str,
    mode_filter: str,
    *,
    hubspot: Optional[HubSpotClient] = None,
    db: Optional[SupabaseClient] = None,
    clock: Optional[Clock] = None,
    inter_campaign_delay: Optional[float] = None,
    today: Optional[date] = None,
    logger: Optional[logging.Logger] = None,
) -> RunReport:
    """
    Build every campaign list matching the filters.

    Raises:
        InvalidFilterError: unknown days/mode filter
        NoCampaignsFound: nothing in the segmentation table matched
    """
    log = logger or logging.getLogger(f"{__name__}.create_lists")
    hubspot = hubspot or HubSpotClient()
    db = db or SupabaseClient()
    clock = clock or Clock()
    delay = get_inter_list_delay() if inter_campaign_delay is None else inter_campaign_delay

    log.info("Create lists requested | days=%s mode=%s", days_filter, mode_filter)
    configs = load_campaign_configs(db, days_filter, mode_filter, today=today)
    if not configs:
        raise NoCampaignsFound(f"No campaigns match days={days_filter} mode={mode_filter}")

    plan = describe_plan(configs, delay)
    log.info(
        "Processing %d campaigns (first: %s, %d contacts requested, est. %s)",
        plan["count"],
        plan["first_campaign"],
        plan["total_contacts_requested"],
        plan["estimated_completion_time"],
    )

    allocator = CampaignAllocator(
        hubspot,
        db,
        fetcher=ContactFetcher(hubspot, clock=clock),
        uploader=ListUploader(hubspot, clock=clock),
        property_updater=ContactPropertyUpdater(hubspot, clock=clock),
    )
    runner = CampaignRunner(allocator, inter_campaign_delay=delay, clock=clock, logger=log)
    return await runner.run(configs, FilterCriteria(days=days_filter, mode=mode_filter))


async def clone_emails(
    email_ids: Sequence[str],
    day_count: int,
    strategy: str = CloneStrategy.SMART.value,
    *,
    options: Optional[CloneOptions] = None,
    hubspot: Optional[HubSpotClient] = None,
    db: Optional[SupabaseClient] = None,
    clock: Optional[Clock] = None,
    logger: Optional[logging.Logger] = None,
) -> CloneStats:
    """Validate inputs and run one cloning pass with a fresh name cache."""
    ids = [str(e).strip() for e in email_ids or [] if str(e).strip()]
    if not ids:
        raise ValueError("Please provide at least one valid email ID")
    try:
        days = int(day_count)
    except (TypeError, ValueError):
        raise ValueError("Please provide a valid cloning count")
    if days < 1:
        raise ValueError("Please provide a valid cloning count")
    try:
        clone_strategy = CloneStrategy(strategy)
    except ValueError:
        raise ValueError(f"Unknown cloning strategy {strategy!r}")

    cloner = EmailCloner(
        hubspot or HubSpotClient(),
        db or SupabaseClient(),
        clock=clock,
        logger=logger or logging.getLogger(f"{__name__}.clone_emails"),
    )
    return await cloner.clone_and_schedule(ids, days, clone_strategy, options, run=CloneRun())
