#!/usr/bin/env python3
"""
Add a contact list to a draft marketing email's recipients.

Usage:
    python scripts/include_list_in_email.py --email-id 123 --list-id 456
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from crmflow.services.email_admin_service import EmailAdminService  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Include a list in a draft email")
    parser.add_argument("--email-id", required=True)
    parser.add_argument("--list-id", required=True)
    args = parser.parse_args()

    result = EmailAdminService().include_list_in_email(args.email_id, args.list_id)
    if result["success"]:
        logger.info(f"✅ {result['message']}")
    else:
        logger.error(f"❌ {result['message']}")
        if result.get("details"):
            logger.error(f"Details: {result['details']}")
        sys.exit(1)


if __name__ == "__main__":
    main()
