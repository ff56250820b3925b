"""
Configuration module for CRMFlow.
Contains HubSpot endpoints, batching/pacing settings and Supabase table names.
"""

import os
from dotenv import load_dotenv
from typing import Dict, List, Optional

# Load environment variables
load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw not in (None, "") else default
    except ValueError:
        return default


def _int_list_env(name: str, default: List[int]) -> List[int]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [int(part) for part in raw.split(",") if part.strip()]


# HubSpot API Configuration
HUBSPOT_ACCESS_TOKEN = os.getenv("HUBSPOT_ACCESS_TOKEN")
HUBSPOT_API_URL = os.getenv("HUBSPOT_API_URL", "https://api.hubapi.com")
# Marketing email endpoint used for clone/search/update/delete
HUBSPOT_EMAILS_URL = os.getenv("BASE_URL", f"{HUBSPOT_API_URL}/marketing/v3/emails")
HUBSPOT_REQUEST_TIMEOUT = 60  # Seconds per HTTP request

# Contact retrieval
RETRIEVAL_BATCH_SIZE = _int_env("HUBSPOT_RETRIEVAL_BATCH_SIZE", 1000)
MAX_RETRIES = _int_env("HUBSPOT_MAX_RETRIES", 3)
FETCH_PAGE_DELAY = 0.2  # Seconds between successful pages
FETCH_BACKOFF_BASE = 1.0
FETCH_BACKOFF_CAP = 10.0
MIN_FETCH_COUNT = 500  # Floor for over-fetching before the used-contacts filter
OVERFETCH_FACTOR = 3

# List upload
UPLOAD_CHUNK_SCHEDULE = [300, 100, 50, 1]
UPLOAD_MAX_ATTEMPTS = 3
UPLOAD_CHUNK_DELAY = 0.5
UPLOAD_BACKOFF_BASE = 1.0
UPLOAD_BACKOFF_CAP = 5.0

# Contact property stamping
PROPERTY_UPDATE_CHUNK_SIZE = 100
PROPERTY_UPDATE_DELAY = 0.3
LAST_SENT_DATE_PROPERTY = "recent_marketing_email_sent_date"
LAST_SENT_BRAND_PROPERTY = "last_marketing_email_sent_brand"

# Campaign runs
INTER_LIST_DELAY_MINUTES = _int_env("HUBSPOT_INTER_LIST_DELAY_MINUTES", 3)
INTER_LIST_DELAY_SECONDS = INTER_LIST_DELAY_MINUTES * 60

VALID_DAYS_FILTERS = ["today", "t+1", "t+2", "t+3", "all"]
VALID_MODE_FILTERS = ["BAU", "re-engagement", "re-activation"]

# Email cloning
CLONE_TIMEZONE = os.getenv("CLONE_TIMEZONE", "UTC")
CLONE_CONCURRENCY = 3
CLONE_BATCH_DELAY = 0.3
EXISTENCE_CHECK_CONCURRENCY = 5
EXISTENCE_CHECK_DELAY = 0.2

MORNING_HOUR = 11
AFTERNOON_HOUR = 16
SLOT_INTERVAL_MINUTES = 5
MAX_MORNING_SLOTS = 12

# Recipients applied to every clone
CLONE_MAILING_ILS_LISTS_EXCLUDED = _int_list_env("CLONE_ILS_LISTS_EXCLUDED", [10469])
CLONE_MAILING_ILS_LISTS_INCLUDED = _int_list_env("CLONE_ILS_LISTS_INCLUDED", [39067])
CLONE_MAILING_LISTS_EXCLUDED = _int_list_env("CLONE_LISTS_EXCLUDED", [6591])
CLONE_MAILING_LISTS_INCLUDED = _int_list_env("CLONE_LISTS_INCLUDED", [31189])

# Custom email properties carried over to clones: internal name -> display label
EMAIL_CUSTOM_PROPERTIES: Dict[str, str] = {
    "emailCategory": "Email Category",
    "mdlzBrand": "MDLZ Brand",
}

# Supabase Configuration
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

CREATED_LISTS_TABLE = "created_lists"
CLONED_EMAILS_TABLE = "cloned_emails"
SEGMENTATION_TABLE = "segmentation"

# Validation configuration
REQUIRED_ENV_VARS = ["HUBSPOT_ACCESS_TOKEN", "SUPABASE_URL", "SUPABASE_SERVICE_KEY"]


def missing_env_vars() -> List[str]:
    """Return the names of required environment variables that are unset."""
    return [name for name in REQUIRED_ENV_VARS if not os.getenv(name)]


def get_inter_list_delay(minutes: Optional[int] = None) -> float:
    """
    Get the spacing between campaign starts in seconds.

    Args:
        minutes: Override in minutes; falls back to HUBSPOT_INTER_LIST_DELAY_MINUTES

    Returns:
        Delay in seconds
    """
    if minutes is None:
        return float(INTER_LIST_DELAY_SECONDS)
    return float(max(0, minutes) * 60)
