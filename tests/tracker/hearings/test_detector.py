import pytest

from tracker.core.exceptions import StoreReadFailure, UpstreamUnavailable
from tracker.hearings.detector import ChangeDetector, status_changed
from tracker.hearings.notifier import Notifier
from tracker.settings import (
    KEYWORD_ALERT_LOG_TABLE,
    STATUS_HISTORY_TABLE,
    TRACKED_ITEMS_TABLE,
    TRACKED_KEYWORDS_TABLE,
)


class RecordingNotifier(Notifier):
    def __init__(self, store=None, fail=False):
        self.store = store
        self.fail = fail
        self.status_alerts = []
        self.keyword_matches = []
        self.ledger_at_notify = None

    def notify_status_changes(self, alerts):
        if self.fail:
            raise RuntimeError("mail relay down")
        self.status_alerts.extend(alerts)

    def notify_keyword_matches(self, matches):
        if self.store is not None:
            self.ledger_at_notify = self.store.select(KEYWORD_ALERT_LOG_TABLE)
        self.keyword_matches.extend(matches)


def tracked(item_id, bill_number, status="Introduced", **extra):
    row = {
        "id": item_id,
        "bill_number": bill_number,
        "title": f"Title {bill_number}",
        "status": status,
        "action_status": "monitor",
        "is_manual_entry": False,
        "tracked_at": f"2024-05-{int(item_id):02d}T00:00:00+00:00",
    }
    row.update(extra)
    return row


@pytest.fixture
def make_detector(settings, store, fake_client_factory, fixed_now):
    def build(bills, keyword_results=None, notifier=None, **settings_update):
        lims = fake_client_factory(bills, keyword_results=keyword_results)
        detector = ChangeDetector(
            settings.model_copy(update=settings_update),
            lims,
            store,
            notifier=notifier,
            sleep=lambda seconds: None,
            clock=lambda: fixed_now,
        )
        return detector, lims

    return build


class TestStatusChanged:
    def test_requires_both_statuses(self):
        assert status_changed("Introduced", "Committee Referral")
        assert not status_changed("Introduced", "Introduced")
        assert not status_changed(None, "Introduced")
        assert not status_changed("Introduced", "")


class TestStatusChecks:
    """Refreshing tracked items against LIMS."""

    def test_introduced_to_committee_referral(self, make_detector, store, details_factory, fixed_now):
        store.upsert(TRACKED_ITEMS_TABLE, tracked("1", "B26-0001", status="Introduced"))
        detector, _ = make_detector({"B26-0001": details_factory("B26-0001", status="Committee Referral")})

        result = detector.run()

        history = store.select(STATUS_HISTORY_TABLE)
        assert len(history) == 1
        assert history[0]["item_id"] == "1"
        assert history[0]["old_status"] == "Introduced"
        assert history[0]["new_status"] == "Committee Referral"
        assert result.checked == 1
        assert [(c.old_status, c.new_status) for c in result.status_changes] == [
            ("Introduced", "Committee Referral")
        ]
        item = store.get_one(TRACKED_ITEMS_TABLE, {"id": "1"})
        assert item["status"] == "Committee Referral"
        assert item["hearing_checked_at"] == fixed_now.isoformat()

    def test_unchanged_status_still_refreshes_display_fields(self, make_detector, store, details_factory):
        store.upsert(TRACKED_ITEMS_TABLE, tracked("1", "B26-0001", status="Introduced"))
        details = details_factory(
            "B26-0001",
            status="Introduced",
            committeeHearing=[{"hearingDate": "2024-07-01T10:00:00", "hearingType": "Public Hearing", "location": "Room 412"}],
            additionalInformation="Hearing notice published",
        )
        detector, _ = make_detector({"B26-0001": details})

        result = detector.run()

        assert result.status_changes == []
        assert store.select(STATUS_HISTORY_TABLE) == []
        item = store.get_one(TRACKED_ITEMS_TABLE, {"id": "1"})
        assert item["next_hearing_date"].startswith("2024-07-01T10:00:00")
        assert item["hearing_type"] == "Public Hearing"
        assert item["hearing_location"] == "Room 412"
        assert item["additional_information"] == "Hearing notice published"
        assert item["latest_activity_label"] == "Introduced"

    def test_missing_old_status_is_filled_without_event(self, make_detector, store, details_factory):
        store.upsert(TRACKED_ITEMS_TABLE, tracked("1", "B26-0001", status=None))
        detector, _ = make_detector({"B26-0001": details_factory("B26-0001", status="Introduced")})

        result = detector.run()

        assert result.status_changes == []
        assert store.get_one(TRACKED_ITEMS_TABLE, {"id": "1"})["status"] == "Introduced"

    def test_manual_entries_and_unnumbered_items_are_skipped(self, make_detector, store, details_factory):
        store.upsert(TRACKED_ITEMS_TABLE, [
            tracked("1", "B26-0001"),
            tracked("2", "B26-0002", is_manual_entry=True),
            tracked("3", None),
        ])
        detector, lims = make_detector({
            "B26-0001": details_factory("B26-0001"),
            "B26-0002": details_factory("B26-0002"),
        })

        result = detector.run()

        assert result.checked == 1
        assert lims.detail_calls == ["B26-0001"]

    def test_per_item_failures_are_reported(self, make_detector, store, details_factory):
        store.upsert(TRACKED_ITEMS_TABLE, [
            tracked("1", "B26-0001"),
            tracked("2", "B26-0002"),
            tracked("3", "B26-0003"),
        ])
        detector, _ = make_detector({
            "B26-0001": details_factory("B26-0001", status="Enacted"),
            "B26-0002": UpstreamUnavailable("/LegislationDetails/B26-0002", 500),
            "B26-0003": None,
        })

        result = detector.run()

        assert result.checked == 1
        assert sorted(e["id"] for e in result.errors) == ["2", "3"]
        assert "hearing_checked_at" not in store.get_one(TRACKED_ITEMS_TABLE, {"id": "2"})
        assert store.get_one(TRACKED_ITEMS_TABLE, {"id": "1"})["status"] == "Enacted"


    def test_unreadable_tracked_items_are_reported(self, make_detector, store, monkeypatch):
        store.upsert(TRACKED_KEYWORDS_TABLE, {"keyword": "housing"})
        select = store.select

        def failing_select(table, *args, **kwargs):
            if table == TRACKED_ITEMS_TABLE:
                raise StoreReadFailure(table, 503, "down")
            return select(table, *args, **kwargs)

        monkeypatch.setattr(store, "select", failing_select)
        detector, lims = make_detector({}, keyword_results={"housing": [{"legislationNumber": "B26-0101"}]})

        result = detector.run()

        assert result.checked == 0
        assert result.errors[0]["id"] is None
        assert "tracked_items" in result.errors[0]["error"]
        assert result.new_keyword_matches == []
        assert lims.search_calls == []

    def test_invalid_rows_are_skipped(self, make_detector, store, details_factory):
        store.upsert(TRACKED_ITEMS_TABLE, [
            tracked("1", "B26-0001", status="Introduced"),
            tracked("2", "B26-0002", title={"en": "not a string"}),
        ])
        detector, lims = make_detector({
            "B26-0001": details_factory("B26-0001", status="Enacted"),
            "B26-0002": details_factory("B26-0002"),
        })

        result = detector.run()

        assert result.checked == 1
        assert [e["id"] for e in result.errors] == ["2"]
        assert lims.detail_calls == ["B26-0001"]


class TestAlerts:
    """Only status changes on priority items reach the notifier."""

    def test_alerts_only_for_priority_action_statuses(self, make_detector, store, details_factory):
        store.upsert(TRACKED_ITEMS_TABLE, [
            tracked("1", "B26-0001", action_status="action_needed"),
            tracked("2", "B26-0002", action_status="no_action"),
        ])
        notifier = RecordingNotifier()
        detector, _ = make_detector(
            {
                "B26-0001": details_factory("B26-0001", status="Committee Referral"),
                "B26-0002": details_factory("B26-0002", status="Committee Referral"),
            },
            notifier=notifier,
        )

        result = detector.run()

        assert len(result.status_changes) == 2
        assert [a.item.id for a in notifier.status_alerts] == ["1"]

    def test_notifier_failure_is_reported(self, make_detector, store, details_factory):
        store.upsert(TRACKED_ITEMS_TABLE, tracked("1", "B26-0001", action_status="action_needed"))
        detector, _ = make_detector(
            {"B26-0001": details_factory("B26-0001", status="Enacted")},
            notifier=RecordingNotifier(fail=True),
        )

        result = detector.run()

        assert result.errors == [{"notifier": "RuntimeError", "error": "mail relay down"}]
        assert len(store.select(STATUS_HISTORY_TABLE)) == 1


class TestKeywordMatches:
    """Keyword searches deduplicated against tracked bills and the alert ledger."""

    def test_new_matches_are_ledgered_before_notification(self, make_detector, store, details_factory):
        store.upsert(TRACKED_ITEMS_TABLE, tracked("1", "B26-0001"))
        store.upsert(TRACKED_KEYWORDS_TABLE, {"keyword": "housing"})
        store.upsert(KEYWORD_ALERT_LOG_TABLE, {"bill_number": "B26-0100", "keyword": "housing"})
        notifier = RecordingNotifier(store=store)
        detector, _ = make_detector(
            {"B26-0001": details_factory("B26-0001")},
            keyword_results={
                "housing": [
                    {"legislationNumber": "B26-0001", "title": "Tracked"},
                    {"legislationNumber": "B26-0100", "title": "Already alerted"},
                    {"legislationNumber": "B26-0101", "title": "Rent Stabilization", "status": "Introduced"},
                ]
            },
            notifier=notifier,
        )

        result = detector.run()

        assert [(m.keyword, m.bill) for m in result.new_keyword_matches] == [("housing", "B26-0101")]
        assert result.new_keyword_matches[0].title == "Rent Stabilization"
        assert [m.bill for m in notifier.keyword_matches] == ["B26-0101"]
        ledgered = {(r["bill_number"], r["keyword"]) for r in notifier.ledger_at_notify}
        assert ("B26-0101", "housing") in ledgered

    def test_second_run_does_not_repeat_matches(self, make_detector, store):
        store.upsert(TRACKED_KEYWORDS_TABLE, [{"keyword": "housing"}, {"keyword": "transit"}])
        results = {
            "housing": [{"legislationNumber": "B26-0101"}],
            "transit": [{"legislationNumber": "B26-0101"}],
        }
        detector, _ = make_detector({}, keyword_results=results)

        first = detector.run()
        second = detector.run()

        assert sorted((m.keyword, m.bill) for m in first.new_keyword_matches) == [
            ("housing", "B26-0101"),
            ("transit", "B26-0101"),
        ]
        assert second.new_keyword_matches == []
        assert len(store.select(KEYWORD_ALERT_LOG_TABLE)) == 2

    def test_failed_keyword_search_does_not_stop_others(self, make_detector, store):
        store.upsert(TRACKED_KEYWORDS_TABLE, [{"keyword": "housing"}, {"keyword": "transit"}])
        detector, _ = make_detector(
            {},
            keyword_results={
                "housing": UpstreamUnavailable("/SearchLegislation", 503),
                "transit": [{"legislationNumber": "B26-0200"}],
            },
        )

        result = detector.run()

        assert [m.bill for m in result.new_keyword_matches] == ["B26-0200"]
        assert [e["keyword"] for e in result.errors] == ["housing"]

    def test_result_serializes_with_camel_case_keys(self, make_detector, store):
        detector, _ = make_detector({})

        payload = detector.run().model_dump(mode="json", by_alias=True)

        assert payload == {"checked": 0, "statusChanges": [], "newKeywordMatches": [], "errors": []}
