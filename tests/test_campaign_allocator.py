import asyncio

import pytest
import requests

from crmflow.core.models import CampaignConfig, FilterCriteria
from crmflow.services.campaign_allocator import (
    CampaignAllocator,
    build_list_name,
    fetch_target,
    fulfillment_percentage,
)
from crmflow.services.contact_fetcher import ContactFetcher
from crmflow.services.list_uploader import ListUploader
from crmflow.services.property_updater import ContactPropertyUpdater


def make_config(**overrides):
    data = {
        "brand": "Acme",
        "campaign": "Spring BAU",
        "primary_list_id": 1,
        "secondary_list_id": 2,
        "count": 100,
        "domain": "UK",
        "date": "2025-03-05",
        "last_marketing_email_sent_brand": "Acme",
        "order": 1,
    }
    data.update(overrides)
    return CampaignConfig.model_validate(data)


def make_allocator(hubspot, store, clock):
    return CampaignAllocator(
        hubspot,
        store,
        fetcher=ContactFetcher(hubspot, clock=clock),
        uploader=ListUploader(hubspot, clock=clock),
        property_updater=ContactPropertyUpdater(hubspot, clock=clock),
    )


def test_helpers():
    assert fetch_target(100) == 500
    assert fetch_target(400) == 1200
    assert fulfillment_percentage(40, 100) == 40
    assert fulfillment_percentage(2, 3) == 67
    assert fulfillment_percentage(1, 8) == 13
    assert fulfillment_percentage(5, 0) == 0
    assert build_list_name(make_config()) == "Acme - Spring BAU - UK - 5 Mar 2025"


def test_full_fulfillment_from_primary(hubspot, store, clock):
    hubspot.lists["1"] = list(range(1, 301))
    hubspot.lists["2"] = list(range(1000, 1100))
    used = set()
    criteria = FilterCriteria(days="t+1", mode="BAU")

    result = asyncio.run(make_allocator(hubspot, store, clock).allocate(make_config(), used, criteria))

    assert result.contact_count == 100
    assert result.fulfillment_percentage == 100
    assert result.available_count == 300
    assert result.filtered_count == 0
    assert used == set(range(1, 101))
    # secondary is not consulted when the primary covers the request
    assert {call[0] for call in hubspot.page_calls} == {"1"}
    assert hubspot.created == ["Acme - Spring BAU - UK - 5 Mar 2025"]

    row = store.created_lists[0]
    assert row["contact_count"] == 100
    assert row["requested_count"] == 100
    assert row["filter_criteria"] == {"days": "t+1", "mode": "BAU"}
    assert row["campaign_details"] == {"brand": "Acme", "campaign": "Spring BAU", "date": "2025-03-05"}
    assert result.record == row


def test_partial_fulfillment_tops_up_from_secondary(hubspot, store, clock):
    hubspot.lists["1"] = list(range(1, 31))
    hubspot.lists["2"] = list(range(100, 110))

    result = asyncio.run(make_allocator(hubspot, store, clock).allocate(make_config(), set()))

    assert result.contact_count == 40
    assert result.fulfillment_percentage == 40
    assert result.available_count == 40
    assert result.selected[:30] == list(range(1, 31))
    assert store.created_lists[0]["fulfillment_percentage"] == 40


def test_contacts_are_never_reused_across_campaigns(hubspot, store, clock):
    hubspot.lists["1"] = list(range(1, 151))
    allocator = make_allocator(hubspot, store, clock)
    used = set()

    first = asyncio.run(allocator.allocate(make_config(secondary_list_id=None), used))
    second = asyncio.run(allocator.allocate(make_config(campaign="Spring BAU 2", secondary_list_id=None), used))

    assert first.contact_count == 100
    assert second.contact_count == 50
    assert second.filtered_count == 100
    assert not set(first.selected) & set(second.selected)
    assert len(used) == 150


def test_overlapping_lists_are_deduplicated(hubspot, store, clock):
    hubspot.lists["1"] = list(range(1, 11))
    hubspot.lists["2"] = list(range(5, 21))

    result = asyncio.run(make_allocator(hubspot, store, clock).allocate(make_config(count=15), set()))

    assert result.selected == list(range(1, 16))


def test_empty_selection_still_creates_list_and_record(hubspot, store, clock):
    result = asyncio.run(make_allocator(hubspot, store, clock).allocate(make_config(secondary_list_id=None), set()))

    assert result.contact_count == 0
    assert result.fulfillment_percentage == 0
    assert len(hubspot.created) == 1
    assert hubspot.added == []
    assert hubspot.updates == []
    assert store.created_lists[0]["contact_count"] == 0


def test_side_effects_populate_send_list_destination_and_properties(hubspot, store, clock):
    hubspot.lists["1"] = list(range(1, 11))
    config = make_config(count=10, send_contact_list_id=777)

    result = asyncio.run(make_allocator(hubspot, store, clock).allocate(config, set()))

    assert [list_id for list_id, _ in hubspot.added] == ["777", result.list_id]
    assert result.send_list_upload.success_count == 10
    assert result.list_upload.success_count == 10
    assert result.property_update.updated == 10
    assert hubspot.updates[0][0]["properties"]["last_marketing_email_sent_brand"] == "Acme"


def test_primary_fetch_failure_counts_as_empty(hubspot, store, clock):
    hubspot.lists["1"] = list(range(1, 11))
    hubspot.lists["2"] = list(range(50, 100))
    hubspot.page_errors = [RuntimeError("down")] * 3

    result = asyncio.run(make_allocator(hubspot, store, clock).allocate(make_config(), set()))

    assert result.primary_fetched == 0
    assert result.contact_count == 50


def test_persistence_failure_does_not_fail_allocation(hubspot, store, clock):
    hubspot.lists["1"] = list(range(1, 11))
    store.fail_inserts = True

    result = asyncio.run(make_allocator(hubspot, store, clock).allocate(make_config(count=10), set()))

    assert result.contact_count == 10
    assert result.record is None


def test_list_creation_failure_propagates(hubspot, store, clock):
    hubspot.lists["1"] = list(range(1, 11))
    hubspot.fail_create = True

    with pytest.raises(requests.HTTPError):
        asyncio.run(make_allocator(hubspot, store, clock).allocate(make_config(count=10), set()))
    assert store.created_lists == []


def test_secondary_completes_the_request(hubspot, store, clock):
    hubspot.lists["1"] = list(range(1, 61))
    hubspot.lists["2"] = list(range(100, 150))

    result = asyncio.run(make_allocator(hubspot, store, clock).allocate(make_config(), set()))

    assert result.primary_available == 60
    assert result.secondary_available == 50
    assert result.contact_count == 100
    assert result.fulfillment_percentage == 100
    assert result.selected == list(range(1, 61)) + list(range(100, 140))
    assert store.created_lists[0]["fulfillment_percentage"] == 100
