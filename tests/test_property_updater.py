import asyncio
from datetime import date

from crmflow.services.property_updater import ContactPropertyUpdater


class BatchHubSpot:
    def __init__(self, fail_on_call=None):
        self.batches = []
        self.fail_on_call = fail_on_call

    def batch_update_contacts(self, inputs):
        self.batches.append(inputs)
        if self.fail_on_call == len(self.batches):
            raise RuntimeError("batch rejected")
        return {}


def make_updater(hubspot, clock):
    return ContactPropertyUpdater(
        hubspot,
        chunk_size=100,
        chunk_delay=0.3,
        date_property="recent_marketing_email_sent_date",
        brand_property="last_marketing_email_sent_brand",
        clock=clock,
    )


def test_updates_in_fixed_batches(clock):
    hubspot = BatchHubSpot()
    report = asyncio.run(make_updater(hubspot, clock).update_properties(list(range(250)), date(2025, 3, 5), "Acme"))

    assert [len(b) for b in hubspot.batches] == [100, 100, 50]
    assert hubspot.batches[0][0] == {
        "id": "0",
        "properties": {
            "recent_marketing_email_sent_date": "1741132800000",
            "last_marketing_email_sent_brand": "Acme",
        },
    }
    assert report.updated == 250
    assert clock.sleeps == [0.3, 0.3, 0.3]


def test_failed_batch_is_logged_and_skipped(clock):
    hubspot = BatchHubSpot(fail_on_call=2)
    contacts = list(range(250))
    report = asyncio.run(make_updater(hubspot, clock).update_properties(contacts, "2025-03-05", None))

    assert report.updated == 150
    assert report.failed == contacts[100:200]
    assert len(hubspot.batches) == 3


def test_no_contacts_no_calls(clock):
    hubspot = BatchHubSpot()
    report = asyncio.run(make_updater(hubspot, clock).update_properties([], date(2025, 3, 5), "Acme"))

    assert report.updated == 0
    assert hubspot.batches == []
