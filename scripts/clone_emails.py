#!/usr/bin/env python3
"""
Clone marketing emails across the next N days.

Usage:
    python scripts/clone_emails.py --email-ids 123 456 --days 5 --strategy smart
    python scripts/clone_emails.py --email-ids 123 --days 3 --strategy custom \
        --start-hour 9 --interval 10 --morning-window 90 --afternoon-hour 15
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

from crmflow.config import CLONE_TIMEZONE, missing_env_vars  # noqa: E402
from crmflow.core.models import CloneStrategy  # noqa: E402
from crmflow.core.scheduling import CustomSlotOptions  # noqa: E402
from crmflow.services.email_cloner import CloneOptions  # noqa: E402
from crmflow.tasks.pipeline import clone_emails  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("scripts.clone_emails")
console = Console()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Clone HubSpot marketing emails across future days")
    parser.add_argument("--email-ids", nargs="+", required=True, help="Source email IDs, in slot order")
    parser.add_argument("--days", type=int, required=True, help="Number of future days to clone for")
    parser.add_argument(
        "--strategy",
        default=CloneStrategy.SMART.value,
        choices=[s.value for s in CloneStrategy],
    )
    parser.add_argument("--timezone", default=CLONE_TIMEZONE, help="IANA zone used for send slots")
    parser.add_argument("--start-hour", type=int, default=None)
    parser.add_argument("--start-minute", type=int, default=0)
    parser.add_argument("--interval", type=int, default=None, help="Minutes between slots")
    parser.add_argument("--morning-window", type=int, default=None, help="Minutes of morning slots")
    parser.add_argument("--afternoon-hour", type=int, default=None)
    parser.add_argument("--afternoon-minute", type=int, default=0)
    return parser.parse_args()


def build_options(args: argparse.Namespace) -> CloneOptions:
    custom = None
    if args.strategy == CloneStrategy.CUSTOM.value:
        defaults = CustomSlotOptions()
        custom = CustomSlotOptions(
            start_hour=defaults.start_hour if args.start_hour is None else args.start_hour,
            start_minute=args.start_minute,
            interval=defaults.interval if args.interval is None else args.interval,
            morning_window_minutes=(
                defaults.morning_window_minutes if args.morning_window is None else args.morning_window
            ),
            afternoon_hour=defaults.afternoon_hour if args.afternoon_hour is None else args.afternoon_hour,
            afternoon_minute=args.afternoon_minute,
        )
    return CloneOptions(custom_slots=custom, timezone=args.timezone)


async def main() -> None:
    args = parse_args()
    missing = missing_env_vars()
    if missing:
        logger.error(f"Missing environment variables: {', '.join(missing)}")
        sys.exit(1)

    try:
        stats = await clone_emails(args.email_ids, args.days, args.strategy, options=build_options(args), logger=logger)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    if stats.cloned_emails:
        table = Table(title="Cloned emails", header_style="bold green")
        table.add_column("id")
        table.add_column("name")
        table.add_column("scheduled")
        for email in stats.cloned_emails:
            table.add_row(email["id"], email["name"], email["time"])
        console.print(table)
    console.print(stats.message)


if __name__ == "__main__":
    asyncio.run(main())
