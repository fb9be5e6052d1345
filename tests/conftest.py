"""Shared fixtures: zero-delay settings, a throwaway diskcache store and a scripted LIMS client."""

from datetime import datetime, timezone

import pytest

from tracker.core.exceptions import NotFound, UpstreamUnavailable
from tracker.lims.models import LegislationSummary
from tracker.settings import PRIMARY_KEYS, TrackerSettings
from tracker.store.diskcache_store import DiskCacheStore

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeLimsClient:
    """Scripted stand-in for ``LimsClient``.

    ``bills`` maps identifiers to detail payloads. A payload that is an
    exception instance is raised instead of returned; identifiers missing from
    ``bills`` raise ``NotFound``.
    """

    def __init__(self, bills=None, keyword_results=None, page_size=100, fail_at_offset=None):
        self.bills = dict(bills or {})
        self.keyword_results = dict(keyword_results or {})
        self.page_size = page_size
        self.fail_at_offset = fail_at_offset
        self.detail_calls = []
        self.search_calls = []

    def detail(self, identifier):
        self.detail_calls.append(identifier)
        if identifier not in self.bills:
            raise NotFound(f"/LegislationDetails/{identifier}")
        payload = self.bills[identifier]
        if isinstance(payload, Exception):
            raise payload
        return payload

    def search(self, keyword="", category_id=0, council_period=None, limit=None, offset=0):
        self.search_calls.append({"keyword": keyword, "category_id": category_id, "offset": offset})
        if keyword:
            result = self.keyword_results.get(keyword, [])
            if isinstance(result, Exception):
                raise result
            return [LegislationSummary(**row) for row in result]

        if self.fail_at_offset is not None and offset >= self.fail_at_offset:
            raise UpstreamUnavailable("/SearchLegislation", 503, "service unavailable")
        numbers = list(self.bills)[offset:offset + (limit or self.page_size)]
        return [
            LegislationSummary(
                legislationNumber=n,
                title=f"Title {n}",
                status=self.bills[n].get("status") if isinstance(self.bills[n], dict) else None,
            )
            for n in numbers
        ]

    def iter_search(self, keyword="", category_id=0, council_period=None):
        offset = 0
        while True:
            page = self.search(keyword, category_id, council_period, self.page_size, offset)
            if not page:
                return
            yield page
            if len(page) < self.page_size:
                return
            offset += self.page_size


def bill_details(number, status="Under Council Review", **extra):
    """A minimal populated LegislationDetails payload."""
    details = {
        "legislationNumber": number,
        "title": f"Title {number}",
        "status": status,
        "category": "Bill",
        "introductionDate": "2024-01-10T00:00:00",
    }
    details.update(extra)
    return details


@pytest.fixture
def settings(tmp_path):
    """Settings with every delay zeroed and the store under tmp_path."""
    return TrackerSettings(
        batch_size=20,
        detail_delay=0,
        skip_delay=0,
        page_delay=0,
        hearing_check_delay=0,
        keyword_search_delay=0,
        min_request_interval=0,
        store_backend="diskcache",
        store_dir=str(tmp_path / "store"),
    )


@pytest.fixture
def store(tmp_path):
    """A real DiskCacheStore in a temporary directory."""
    record_store = DiskCacheStore(str(tmp_path / "records"), primary_keys=PRIMARY_KEYS)
    yield record_store
    record_store.close()


@pytest.fixture
def fake_client_factory():
    return FakeLimsClient


@pytest.fixture
def details_factory():
    return bill_details


@pytest.fixture
def fixed_now():
    return FIXED_NOW
