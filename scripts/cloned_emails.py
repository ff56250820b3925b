#!/usr/bin/env python3
"""
Inspect and manage cloned email records.

Usage:
    python scripts/cloned_emails.py list [--day 2025-03-05]
    python scripts/cloned_emails.py delete <record_id>
    python scripts/cloned_emails.py publish <email_id> [--at 2025-03-05T11:00:00Z]
    python scripts/cloned_emails.py debug <email_id>
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from crmflow.services.email_admin_service import EmailAdminService  # noqa: E402


console = Console()


def show_list(service: EmailAdminService, day: str | None) -> int:
    result = service.list_cloned_emails(day)
    if not result["success"]:
        console.print(f"[red]{result['message']}[/red] {result.get('error', '')}")
        return 1

    rows = result["data"]
    if not rows:
        console.print("[yellow]No cloned emails found[/yellow]")
        return 0

    table = Table(title="Cloned emails", header_style="bold magenta")
    table.add_column("id")
    table.add_column("name")
    table.add_column("hubspot id")
    table.add_column("scheduled")
    table.add_column("strategy")
    table.add_column("status")
    for row in rows:
        table.add_row(
            str(row.get("id")),
            row.get("cloned_email_name") or "",
            str(row.get("cloned_email_id") or ""),
            (row.get("scheduled_time") or "")[:19],
            row.get("cloning_strategy") or "",
            row.get("status") or "",
        )
    console.print(table)
    return 0


def report(result: dict) -> int:
    style = "green" if result.get("success") else "red"
    console.print(f"[{style}]{result.get('message', '')}[/{style}]")
    extra = {k: v for k, v in result.items() if k not in ("success", "message")}
    if extra:
        console.print_json(json.dumps(extra, default=str))
    return 0 if result.get("success") else 1


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage cloned email records")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List cloned emails")
    list_cmd.add_argument("--day", default=None, help="Only emails scheduled on this UTC day (YYYY-MM-DD)")

    delete_cmd = sub.add_parser("delete", help="Delete a cloned email record and its HubSpot email")
    delete_cmd.add_argument("record_id")

    publish_cmd = sub.add_parser("publish", help="Publish or schedule an email")
    publish_cmd.add_argument("email_id")
    publish_cmd.add_argument("--at", default=None, help="ISO timestamp to schedule for")

    debug_cmd = sub.add_parser("debug", help="Show an email's raw properties")
    debug_cmd.add_argument("email_id")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    service = EmailAdminService()

    if args.command == "list":
        code = show_list(service, args.day)
    elif args.command == "delete":
        code = report(service.delete_cloned_email(args.record_id))
    elif args.command == "publish":
        code = report(service.publish_email(args.email_id, args.at))
    else:
        code = report(service.debug_email(args.email_id))
    sys.exit(code)


if __name__ == "__main__":
    main()
