from datetime import datetime, timezone

from tracker.lims.models import is_populated, map_detail_to_record, parse_committees, parse_members

CACHED_AT = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestMapDetailToRecord:
    """Mapping LegislationDetails payloads onto cache rows."""

    def test_maps_core_fields(self):
        details = {
            "title": "Affordable Housing Act",
            "category": "Bill",
            "status": "Under Council Review",
            "introducers": [{"memberName": "Member A"}, {"memberName": "Member B"}],
            "coIntroducers": "Member C",
            "committeesReferredTo": ["Housing", "Budget"],
            "introductionDate": "2024-01-10T00:00:00",
            "additionalInformation": "Sequentially referred",
        }

        record = map_detail_to_record(
            "B26-0001", details, 26, "https://lims.dccouncil.gov/Legislation", CACHED_AT
        )

        assert record.bill_number == "B26-0001"
        assert record.council_period_id == 26
        assert record.introduced_by == "Member A; Member B"
        assert record.co_introducers == "Member C"
        assert record.committees == "Housing; Budget"
        assert record.link == "https://lims.dccouncil.gov/Legislation/B26-0001"
        assert record.raw_details == details

    def test_row_is_json_ready(self):
        record = map_detail_to_record("B26-0002", {"title": "T"}, 26, "https://x/", CACHED_AT)

        row = record.to_row()

        assert row["cached_at"].startswith("2024-06-01T00:00:00")
        assert row["introduced_by"] is None
        assert row["link"] == "https://x/B26-0002"

    def test_naive_cached_at_is_made_utc(self):
        record = map_detail_to_record("B26-0003", {"title": "T"}, 26, "https://x", datetime(2024, 6, 1))

        assert record.cached_at.tzinfo is not None


class TestHelpers:
    def test_is_populated(self):
        assert is_populated({"title": "T"})
        assert not is_populated({})
        assert not is_populated({"title": None, "introducers": []})
        assert not is_populated(None)
        assert not is_populated([{"title": "T"}])

    def test_parse_members(self):
        assert parse_members(["Member A", {"memberName": "Member B"}]) == "Member A; Member B"
        assert parse_members("") is None
        assert parse_members(None) is None

    def test_parse_committees_falls_back_to_flat_field(self):
        assert parse_committees({"referredToCommittees": "Committee of the Whole"}) == "Committee of the Whole"
        assert parse_committees({}) is None
