#!/usr/bin/env python3
"""
Create HubSpot campaign lists for the segmentation rows matching the filters.

Usage:
    python scripts/create_lists.py --days t+1 --mode BAU
    python scripts/create_lists.py --days all --mode re-engagement --delay-minutes 0 --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from crmflow.config import (  # noqa: E402
    VALID_DAYS_FILTERS,
    VALID_MODE_FILTERS,
    get_inter_list_delay,
    missing_env_vars,
)
from crmflow.core.exceptions import InvalidFilterError, NoCampaignsFound  # noqa: E402
from crmflow.database.supabase_client import SupabaseClient  # noqa: E402
from crmflow.tasks.pipeline import create_lists, describe_plan, load_campaign_configs  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("scripts.create_lists")
console = Console()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create HubSpot campaign lists")
    parser.add_argument("--days", required=True, choices=VALID_DAYS_FILTERS, help="Campaign date filter")
    parser.add_argument("--mode", required=True, choices=VALID_MODE_FILTERS, help="Campaign mode filter")
    parser.add_argument("--delay-minutes", type=int, default=None, help="Spacing between campaign starts")
    parser.add_argument("--dry-run", action="store_true", help="Only print the run plan")
    return parser.parse_args()


def print_report(report) -> None:
    table = Table(title="Campaign results", header_style="bold magenta")
    table.add_column("campaign")
    table.add_column("status")
    table.add_column("list id")
    table.add_column("contacts", justify="right")
    table.add_column("requested", justify="right")
    table.add_column("fulfilled", justify="right")

    for outcome in report.outcomes:
        result = outcome.value
        if outcome.ok and result is not None:
            table.add_row(
                outcome.campaign,
                "[green]ok[/green]",
                result.list_id,
                str(result.contact_count),
                str(result.requested_count),
                f"{result.fulfillment_percentage}%",
            )
        else:
            table.add_row(outcome.campaign, f"[red]{outcome.reason}[/red]", "", "", "", "")

    console.print(table)
    summary = report.summary
    console.print(
        f"Success: {summary.successful} | Failed: {summary.failed} | "
        f"Requested: {summary.total_requested} | Fulfilled: {summary.total_fulfilled} | "
        f"Average: {summary.average_fulfillment}%"
    )


async def main() -> None:
    args = parse_args()
    missing = missing_env_vars()
    if missing:
        logger.error(f"Missing environment variables: {', '.join(missing)}")
        sys.exit(1)

    delay = get_inter_list_delay(args.delay_minutes)
    try:
        if args.dry_run:
            configs = load_campaign_configs(SupabaseClient(), args.days, args.mode)
            plan = describe_plan(configs, delay)
            for key, value in plan.items():
                console.print(f"{key}: {value}")
            return

        report = await create_lists(args.days, args.mode, inter_campaign_delay=delay, logger=logger)
    except (InvalidFilterError, NoCampaignsFound) as e:
        logger.error(str(e))
        sys.exit(1)

    print_report(report)
    if report.summary.failed:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
