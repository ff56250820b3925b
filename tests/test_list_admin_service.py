from datetime import datetime, timezone

from crmflow.core.exceptions import PersistenceFailure
from crmflow.services.list_admin_service import ListAdminService


class ListStore:
    def __init__(self, rows=None):
        self.rows = rows or []
        self.windows = []
        self.include_deleted = None
        self.fail = False

    def get_created_lists_between(self, start, end):
        self.windows.append((start, end))
        return self.rows

    def list_created_lists(self, include_deleted=False):
        self.include_deleted = include_deleted
        return self.rows

    def mark_list_deleted(self, list_id):
        if self.fail:
            raise PersistenceFailure("created_lists", "update failed")
        return any(str(r["list_id"]) == str(list_id) for r in self.rows)


class BrandHubSpot:
    def __init__(self, error=None):
        self.error = error

    def get_contact_property_options(self, property_name):
        if self.error:
            raise self.error
        return [{"label": "Acme", "value": "acme"}]


def test_created_lists_for_day_uses_utc_window():
    store = ListStore([{"list_id": "1"}])
    rows = ListAdminService(store, BrandHubSpot()).created_lists_for_day("2025-03-05")

    assert rows == [{"list_id": "1"}]
    assert store.windows == [(
        datetime(2025, 3, 5, tzinfo=timezone.utc),
        datetime(2025, 3, 6, tzinfo=timezone.utc),
    )]


def test_list_manager_adds_display_date():
    store = ListStore([{"list_id": "1", "created_date": "2025-03-05T14:30:00+00:00"}])
    rows = ListAdminService(store, BrandHubSpot()).list_manager(show_all=True)

    assert rows[0]["formatted_date"] == "5 Mar 2025 2:30PM"
    assert store.include_deleted is True


def test_mark_deleted():
    store = ListStore([{"list_id": "1"}])
    service = ListAdminService(store, BrandHubSpot())

    assert service.mark_deleted("1") == {"success": True, "list_id": "1"}
    assert service.mark_deleted("2") == {"success": False, "error": "list_not_found"}
    store.fail = True
    assert service.mark_deleted("1")["success"] is False


def test_brand_options():
    assert ListAdminService(ListStore(), BrandHubSpot()).brand_options()["options"] == [
        {"label": "Acme", "value": "acme"}
    ]
    failed = ListAdminService(ListStore(), BrandHubSpot(error=RuntimeError("401"))).brand_options()
    assert failed["success"] is False


def test_list_manager_handles_trimmed_fractional_seconds():
    store = ListStore([{"list_id": "1", "created_date": "2025-03-05T13:05:00.12345+00:00"}])
    rows = ListAdminService(store, BrandHubSpot()).list_manager()

    assert rows[0]["formatted_date"] == "5 Mar 2025 1:05PM"
    assert store.include_deleted is False
