#!/usr/bin/env python3
"""
Show created campaign lists and mark lists deleted.

Usage:
    python scripts/created_lists.py today [--day 2025-03-05]
    python scripts/created_lists.py all [--show-deleted]
    python scripts/created_lists.py delete <list_id>
    python scripts/created_lists.py brands
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from crmflow.core.dates import format_display_datetime  # noqa: E402
from crmflow.services.list_admin_service import ListAdminService  # noqa: E402


console = Console()


def print_lists(rows, title: str) -> None:
    if not rows:
        console.print("[yellow]No lists found[/yellow]")
        return

    table = Table(title=title, header_style="bold magenta")
    table.add_column("list id")
    table.add_column("name")
    table.add_column("created")
    table.add_column("contacts", justify="right")
    table.add_column("fulfilled", justify="right")
    table.add_column("deleted")
    for row in rows:
        created = row.get("formatted_date")
        if created is None and row.get("created_date"):
            created = format_display_datetime(row["created_date"])
        table.add_row(
            str(row.get("list_id")),
            row.get("name") or "",
            created or "",
            str(row.get("contact_count", "")),
            f"{row.get('fulfillment_percentage', 0)}%",
            "yes" if row.get("deleted") else "",
        )
    console.print(table)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Created campaign lists")
    sub = parser.add_subparsers(dest="command", required=True)

    today = sub.add_parser("today", help="Lists created on one UTC day")
    today.add_argument("--day", default=None)

    all_cmd = sub.add_parser("all", help="List manager view")
    all_cmd.add_argument("--show-deleted", action="store_true")

    delete = sub.add_parser("delete", help="Mark a list deleted")
    delete.add_argument("list_id")

    sub.add_parser("brands", help="Brand options of the last-sent-brand property")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    service = ListAdminService()

    if args.command == "today":
        print_lists(service.created_lists_for_day(args.day), "Lists created today" if not args.day else f"Lists created {args.day}")
    elif args.command == "all":
        print_lists(service.list_manager(show_all=args.show_deleted), "Created lists")
    elif args.command == "delete":
        result = service.mark_deleted(args.list_id)
        if not result["success"]:
            console.print(f"[red]{result['error']}[/red]")
            sys.exit(1)
        console.print(f"[green]List {result['list_id']} marked deleted[/green]")
    else:
        result = service.brand_options()
        if not result["success"]:
            console.print(f"[red]{result['error']}[/red]")
            sys.exit(1)
        for option in result["options"]:
            console.print(f"{option['label']}: {option['value']}")


if __name__ == "__main__":
    main()
