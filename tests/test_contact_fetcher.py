import asyncio

import pytest

from crmflow.core.exceptions import FetchExhausted
from crmflow.core.pacing import Backoff
from crmflow.services.contact_fetcher import ContactFetcher


def make_fetcher(hubspot, clock, **kwargs):
    kwargs.setdefault("page_size", 1000)
    kwargs.setdefault("max_retries", 3)
    kwargs.setdefault("page_delay", 0.2)
    return ContactFetcher(hubspot, backoff=Backoff(1.0, 10.0), clock=clock, **kwargs)


def test_fetches_every_page(hubspot, clock):
    hubspot.lists["A"] = list(range(1, 2501))
    contacts = asyncio.run(make_fetcher(hubspot, clock).fetch("A"))

    assert contacts == list(range(1, 2501))
    assert [call[2] for call in hubspot.page_calls] == [None, 1000, 2000]
    assert clock.sleeps == [0.2, 0.2]


def test_stops_at_max_count(hubspot, clock):
    hubspot.lists["A"] = list(range(1, 2501))
    contacts = asyncio.run(make_fetcher(hubspot, clock).fetch("A", max_count=1500))

    assert len(contacts) == 1500
    assert [call[1] for call in hubspot.page_calls] == [1000, 500]
    assert clock.sleeps == [0.2]


def test_retries_with_backoff(hubspot, clock):
    hubspot.lists["B"] = list(range(10))
    hubspot.page_errors = [RuntimeError("boom"), RuntimeError("boom"), None]

    contacts = asyncio.run(make_fetcher(hubspot, clock).fetch("B"))

    assert contacts == list(range(10))
    assert clock.sleeps == [1.0, 2.0]


def test_raises_when_nothing_collected(hubspot, clock):
    hubspot.lists["B"] = list(range(10))
    hubspot.page_errors = [RuntimeError("boom")] * 3

    with pytest.raises(FetchExhausted) as exc:
        asyncio.run(make_fetcher(hubspot, clock).fetch("B"))

    assert exc.value.list_id == "B"
    assert len(hubspot.page_calls) == 3
    assert clock.sleeps == [1.0, 2.0]


def test_returns_partial_result_after_retry_limit(hubspot, clock):
    hubspot.lists["A"] = list(range(2500))
    hubspot.page_errors = [None, RuntimeError("boom"), RuntimeError("boom"), RuntimeError("boom")]

    contacts = asyncio.run(make_fetcher(hubspot, clock).fetch("A"))

    assert contacts == list(range(1000))
    assert clock.sleeps == [0.2, 1.0, 2.0]


def test_error_counter_resets_after_success(hubspot, clock):
    hubspot.lists["A"] = list(range(2500))
    err = RuntimeError("flaky")
    hubspot.page_errors = [err, None, err, None, err, None]

    contacts = asyncio.run(make_fetcher(hubspot, clock, max_retries=2).fetch("A"))

    assert len(contacts) == 2500


def test_duplicates_and_empty_limit(hubspot, clock):
    hubspot.lists["D"] = [1, 2, 2, 3]
    fetcher = make_fetcher(hubspot, clock)

    assert asyncio.run(fetcher.fetch("D")) == [1, 2, 3]
    assert asyncio.run(fetcher.fetch("D", max_count=0)) == []
    assert len(hubspot.page_calls) == 1
