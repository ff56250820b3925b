import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import requests

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from crmflow.core.exceptions import PersistenceFailure  # noqa: E402
from crmflow.core.models import ContactPage  # noqa: E402
from crmflow.core.pacing import Clock  # noqa: E402


class FakeClock(Clock):
    """Records sleeps and advances virtual time instead of waiting."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds > 0:
            self.now += seconds
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DummyHubSpot:
    """In-memory stand-in for the contact list side of HubSpotClient."""

    def __init__(self, lists: Optional[Dict] = None):
        self.lists = {str(k): list(v) for k, v in (lists or {}).items()}
        # queued outcomes for page calls: an exception to raise, or None to succeed
        self.page_errors: List[Optional[Exception]] = []
        self.page_calls: List[tuple] = []
        self.created: List[str] = []
        self.added: List[tuple] = []
        self.updates: List[list] = []
        self.fail_create = False
        self._next_list_id = 9000

    def get_list_contacts_page(self, list_id, count=1000, vid_offset=None):
        self.page_calls.append((str(list_id), count, vid_offset))
        if self.page_errors:
            error = self.page_errors.pop(0)
            if error is not None:
                raise error
        contacts = self.lists.get(str(list_id), [])
        start = vid_offset or 0
        chunk = contacts[start:start + count]
        end = start + len(chunk)
        return ContactPage(contacts=chunk, has_more=end < len(contacts), vid_offset=end)

    def create_static_list(self, name):
        if self.fail_create:
            raise requests.HTTPError("500 Server Error")
        self._next_list_id += 1
        self.created.append(name)
        return {"list_id": str(self._next_list_id), "deleted": False, "raw": {}}

    def add_contacts_to_list(self, list_id, vids):
        self.added.append((str(list_id), list(vids)))
        return {"updated": list(vids)}

    def batch_update_contacts(self, inputs):
        self.updates.append(inputs)
        return {"status": "COMPLETE"}


class DummyStore:
    """In-memory stand-in for SupabaseClient."""

    def __init__(self, configs: Optional[List[dict]] = None):
        self.configs = list(configs or [])
        self.config_calls: List[Optional[str]] = []
        self.created_lists: List[dict] = []
        self.cloned: List[dict] = []
        self.existing_names = set()
        self.fail_inserts = False

    def get_campaign_configs(self, filter_date=None):
        self.config_calls.append(filter_date)
        rows = [c for c in self.configs if filter_date is None or c.get("date") == filter_date]
        return sorted(rows, key=lambda c: c.get("order", 0))

    def insert_created_list(self, record):
        if self.fail_inserts:
            raise PersistenceFailure("created_lists", "insert failed")
        row = record.to_row()
        self.created_lists.append(row)
        return row

    def find_existing_clone_names(self, names):
        return {n for n in names if n in self.existing_names}

    def insert_cloned_email(self, record):
        if self.fail_inserts:
            raise PersistenceFailure("cloned_emails", "insert failed")
        row = record.to_row()
        self.cloned.append(row)
        return row


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def hubspot():
    return DummyHubSpot()


@pytest.fixture
def store():
    return DummyStore()
