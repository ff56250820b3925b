from types import SimpleNamespace

import requests

from crmflow.core.exceptions import PersistenceFailure
from crmflow.core.models import EmailObject
from crmflow.services.email_admin_service import EmailAdminService, describe_include_error


def http_error(status, payload=None):
    response = SimpleNamespace(status_code=status, json=lambda: payload or {}, text=str(payload))
    return requests.HTTPError(f"{status} Error", response=response)


class AdminHubSpot:
    def __init__(self, email=None):
        self.email = email or {}
        self.v1_updates = []
        self.deleted = []
        self.published = []
        self.get_error = None
        self.delete_error = None

    def get_email_v1(self, email_id):
        if self.get_error:
            raise self.get_error
        return self.email

    def update_email_v1(self, email_id, payload):
        self.v1_updates.append((email_id, payload))
        return payload

    def delete_email(self, email_id):
        if self.delete_error:
            raise self.delete_error
        self.deleted.append(email_id)

    def publish_email(self, email_id, send_at_ms=None):
        self.published.append((email_id, send_at_ms))
        return {"id": email_id}

    def get_email(self, email_id):
        return EmailObject(id=email_id, name="Acme", custom_properties={"emailCategory": "Promo"},
                           raw={"id": email_id, "properties": {"Email Category": "Promo"}})


class AdminStore:
    def __init__(self, records=None):
        self.records = {r["id"]: dict(r) for r in records or []}
        self.patches = []
        self.fail_update = False

    def get_cloned_email(self, record_id):
        return self.records.get(record_id)

    def delete_cloned_email(self, record_id):
        self.records.pop(record_id, None)

    def find_cloned_email_by_remote_id(self, cloned_email_id):
        return next((r for r in self.records.values() if r["cloned_email_id"] == cloned_email_id), None)

    def update_cloned_email(self, record_id, patch):
        if self.fail_update:
            raise PersistenceFailure("cloned_emails", "update failed")
        self.patches.append((record_id, patch))
        return patch

    def get_cloned_emails(self, start=None, end=None):
        return [r for r in self.records.values()]


def test_include_list_refuses_non_draft():
    service = EmailAdminService(AdminStore(), AdminHubSpot({"state": "PUBLISHED"}))
    result = service.include_list_in_email("e1", "l1")

    assert result["success"] is False
    assert "PUBLISHED" in result["message"]


def test_include_list_is_noop_when_already_included():
    hubspot = AdminHubSpot({"state": "DRAFT", "mailingListsIncluded": [5]})
    result = EmailAdminService(AdminStore(), hubspot).include_list_in_email("e1", 5)

    assert result["success"] is True
    assert hubspot.v1_updates == []


def test_include_list_deduplicates_and_keeps_exclusions():
    hubspot = AdminHubSpot({"mailingListsIncluded": [1, "1", 2], "mailingListsExcluded": [9]})
    result = EmailAdminService(AdminStore(), hubspot).include_list_in_email("e1", 3)

    assert result["updated_included_lists"] == ["1", "2", "3"]
    assert hubspot.v1_updates == [("e1", {"mailingListsIncluded": ["1", "2", "3"], "mailingListsExcluded": ["9"]})]


def test_include_list_maps_http_errors():
    hubspot = AdminHubSpot()
    hubspot.get_error = http_error(404)
    result = EmailAdminService(AdminStore(), hubspot).include_list_in_email("e1", "l1")

    assert result["status"] == 404
    assert result["message"] == "Email e1 or list l1 not found in HubSpot"
    assert describe_include_error(http_error(400, {"message": "bad id"}), "e1", "l1") == "Invalid request - bad id"
    assert "authentication" in describe_include_error(http_error(401), "e1", "l1")


def test_delete_missing_record():
    result = EmailAdminService(AdminStore(), AdminHubSpot()).delete_cloned_email("nope")
    assert result["status"] == 404


def test_delete_keeps_going_when_hubspot_delete_fails():
    store = AdminStore([{"id": "r1", "cloned_email_id": "c1"}])
    hubspot = AdminHubSpot()
    hubspot.delete_error = http_error(500, {"message": "locked"})

    result = EmailAdminService(store, hubspot).delete_cloned_email("r1")

    assert result["success"] is True
    assert result["hubspot_deleted"] is False
    assert result["hubspot_error"] == "locked"
    assert "r1" not in store.records


def test_publish_with_schedule_marks_record_published():
    store = AdminStore([{"id": "r1", "cloned_email_id": "c1"}])
    hubspot = AdminHubSpot()

    result = EmailAdminService(store, hubspot).publish_email("c1", "2025-03-05T11:00:00Z")

    assert result["success"] is True
    assert hubspot.published == [("c1", 1741172400000)]
    record_id, patch = store.patches[0]
    assert record_id == "r1"
    assert patch["status"] == "published"
    assert patch["scheduled_time"] == "2025-03-05T11:00:00+00:00"
    assert "published_at" in patch


def test_publish_survives_local_update_failure():
    store = AdminStore([{"id": "r1", "cloned_email_id": "c1"}])
    store.fail_update = True

    result = EmailAdminService(store, AdminHubSpot()).publish_email("c1")

    assert result["success"] is True
    assert result["message"] == "Email published immediately"


def test_debug_email_exposes_custom_properties():
    result = EmailAdminService(AdminStore(), AdminHubSpot()).debug_email("e1")
    assert result["custom_properties"] == {"emailCategory": "Promo"}
    assert result["properties"] == {"Email Category": "Promo"}


def test_publish_rejects_malformed_schedule_time():
    store = AdminStore([{"id": "r1", "cloned_email_id": "c1"}])
    hubspot = AdminHubSpot()

    result = EmailAdminService(store, hubspot).publish_email("c1", "next tuesday")

    assert result["success"] is False
    assert "next tuesday" in result["message"]
    assert hubspot.published == []
    assert store.patches == []
