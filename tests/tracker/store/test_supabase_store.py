from unittest.mock import Mock

import pytest

from tracker.core.exceptions import StoreReadFailure, StoreWriteFailure, UpstreamUnavailable
from tracker.core.http import HttpClient
from tracker.settings import PRIMARY_KEYS
from tracker.store.supabase import SupabaseStore, build_query


class TestBuildQuery:
    """PostgREST query strings."""

    def test_empty(self):
        assert build_query() == ""

    def test_filters_columns_and_order(self):
        query = build_query({"scope_key": "council_period_26"}, ["bill_number", "cached_at"], "tracked_at.desc")

        assert query == "?select=bill_number,cached_at&scope_key=eq.council_period_26&order=tracked_at.desc"

    def test_null_and_bool_use_is(self):
        assert build_query({"bill_number": None, "is_manual_entry": False}) == (
            "?bill_number=is.null&is_manual_entry=is.false"
        )

    def test_values_are_quoted(self):
        assert build_query({"keyword": "rent control"}) == "?keyword=eq.rent%20control"


@pytest.fixture
def http_client():
    return Mock(spec=HttpClient)


@pytest.fixture
def supabase(http_client):
    return SupabaseStore(
        "https://project.supabase.co/", "service-key", primary_keys=PRIMARY_KEYS, http_client=http_client
    )


class TestSupabaseStore:
    def test_select_defaults_to_all_columns(self, supabase, http_client):
        http_client.get.return_value.json.return_value = [{"scope_key": "council_period_26"}]

        rows = supabase.select("lims_cache_cursor", {"scope_key": "council_period_26"})

        assert rows == [{"scope_key": "council_period_26"}]
        assert http_client.get.call_args.args[0] == (
            "https://project.supabase.co/rest/v1/lims_cache_cursor?select=*&scope_key=eq.council_period_26"
        )

    def test_upsert_merges_on_conflict_key(self, supabase, http_client):
        supabase.upsert("keyword_alert_log", {"bill_number": "B26-0001", "keyword": "housing"})

        method, url = http_client.request.call_args.args
        kwargs = http_client.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://project.supabase.co/rest/v1/keyword_alert_log"
        assert kwargs["params"] == {"on_conflict": "bill_number,keyword"}
        assert "merge-duplicates" in kwargs["headers"]["Prefer"]
        assert kwargs["json"] == [{"bill_number": "B26-0001", "keyword": "housing"}]

    def test_patch_targets_filtered_rows(self, supabase, http_client):
        supabase.patch("tracked_items", {"id": "7"}, {"status": "Enacted"})

        method, url = http_client.request.call_args.args
        assert method == "PATCH"
        assert url.endswith("/tracked_items?id=eq.7")
        assert http_client.request.call_args.kwargs["json"] == {"status": "Enacted"}

    def test_read_failure(self, supabase, http_client):
        http_client.get.side_effect = UpstreamUnavailable("/rest/v1/tracked_items", 500)

        with pytest.raises(StoreReadFailure) as exc_info:
            supabase.select("tracked_items")

        assert exc_info.value.table == "tracked_items"
        assert exc_info.value.status_code == 500

    def test_write_failure_names_the_table(self, supabase, http_client):
        http_client.request.side_effect = UpstreamUnavailable("/rest/v1/lims_cache_cursor", 409)

        with pytest.raises(StoreWriteFailure) as exc_info:
            supabase.delete("lims_cache_cursor", {"scope_key": "council_period_26"})

        assert exc_info.value.table == "lims_cache_cursor"
        assert exc_info.value.status_code == 409

    def test_invalid_json_is_a_read_failure(self, supabase, http_client):
        http_client.get.return_value.status_code = 200
        http_client.get.return_value.json.side_effect = ValueError("Expecting value")

        with pytest.raises(StoreReadFailure) as exc_info:
            supabase.select("tracked_items")

        assert exc_info.value.table == "tracked_items"
