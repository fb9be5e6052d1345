"""Status and hearing drift detection for tracked items.

One ``ChangeDetector.run`` call:

1. refetches LIMS details for every tracked bill, records status changes in
   the history table and patches each item with the freshest status, activity
   and hearing data (whether or not the status changed);
2. hands status changes on high-priority items to the notifier;
3. runs every tracked keyword through search and reports bills that are not
   tracked yet and have not been alerted for that keyword before.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from tracker.core.error_utils import ErrorCategorizer
from tracker.core.exceptions import StoreReadFailure, TrackerError
from tracker.core.models import utcnow
from tracker.hearings.extraction import extract_latest_activity, extract_next_hearing
from tracker.hearings.models import (
    CheckResult,
    KeywordAlert,
    KeywordMatch,
    StatusChangeAlert,
    StatusChangeEvent,
    StatusChangeSummary,
    TrackedItem,
)
from tracker.hearings.notifier import LoggingNotifier, Notifier
from tracker.lims.client import LimsClient
from tracker.settings import (
    KEYWORD_ALERT_LOG_TABLE,
    STATUS_HISTORY_TABLE,
    TRACKED_ITEMS_TABLE,
    TRACKED_KEYWORDS_TABLE,
    TrackerSettings,
)
from tracker.store.base import RecordStore

logger = logging.getLogger(__name__)


def status_changed(old_status: Optional[str], new_status: Optional[str]) -> bool:
    """A change needs both statuses present and different."""
    return bool(old_status) and bool(new_status) and old_status != new_status


class ChangeDetector:
    def __init__(
        self,
        settings: TrackerSettings,
        client: LimsClient,
        store: RecordStore,
        notifier: Optional[Notifier] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.client = client
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self._sleep = sleep
        self._clock = clock

    def run(self) -> CheckResult:
        now = self._clock()
        result = CheckResult()

        items = self.load_items(result)
        if items is None:
            # Keyword matching needs the tracked set
            return result
        tracked_bills = [i for i in items if not i.is_manual_entry and i.bill_number]
        logger.info(f"Checking {len(tracked_bills)} tracked bills against LIMS")

        alerts: list[StatusChangeAlert] = []
        for item in tracked_bills:
            try:
                alert = self.check_item(item, now, result)
                if alert is not None:
                    alerts.append(alert)
                result.checked += 1
            except (TrackerError, ValidationError) as e:
                ErrorCategorizer.log_error(logger, e, item.bill_number, context={"item_id": item.id})
                result.errors.append({"id": item.id, "error": str(e)})

            self._sleep(self.settings.hearing_check_delay)

        if alerts:
            self._notify(self.notifier.notify_status_changes, alerts, result)

        matches = self.match_keywords(items, now, result)
        if matches:
            self._notify(self.notifier.notify_keyword_matches, matches, result)

        logger.info(
            f"Done: {result.checked} checked, {len(result.status_changes)} status changes, "
            f"{len(result.new_keyword_matches)} new keyword matches",
            extra={"checked": result.checked, "error_count": len(result.errors)},
        )
        return result

    def load_items(self, result: CheckResult) -> Optional[list[TrackedItem]]:
        """Load tracked items newest first; unreadable rows are reported and skipped.

        Returns None if the table itself could not be read.
        """
        try:
            rows = self.store.select(TRACKED_ITEMS_TABLE, order="tracked_at.desc")
        except StoreReadFailure as e:
            ErrorCategorizer.log_error(logger, e, "tracked items")
            result.errors.append({"id": None, "error": str(e)})
            return None

        items = []
        for row in rows:
            try:
                items.append(TrackedItem(**row))
            except ValidationError as e:
                ErrorCategorizer.log_error(logger, e, "tracked item", context={"item_id": row.get("id")})
                result.errors.append({"id": row.get("id"), "error": str(e)})
        return items

    def check_item(
        self, item: TrackedItem, now: datetime, result: CheckResult
    ) -> Optional[StatusChangeAlert]:
        """Refresh one tracked item. Returns an alert if its change should be notified."""
        details = self.client.detail(item.bill_number)
        if details is None:
            raise TrackerError(f"Empty LegislationDetails payload for {item.bill_number}")

        new_status = details.get("status") or None
        old_status = item.status or None
        activity = extract_latest_activity(details, now)
        hearing = extract_next_hearing(details, now)
        re_referrals = details.get("committeeReReferral") or []

        alert = None
        if status_changed(old_status, new_status):
            event = StatusChangeEvent(
                item_id=item.id,
                old_status=old_status,
                new_status=new_status,
                change_label=activity.label if activity else None,
                changed_at=now,
            )
            self.store.insert(STATUS_HISTORY_TABLE, event.to_row())
            logger.info(
                f"{item.bill_number}: {old_status} -> {new_status}",
                extra={"item_id": item.id, "bill_number": item.bill_number},
            )

            if item.action_status in self.settings.alert_action_statuses:
                alert = StatusChangeAlert(item=item, event=event, activity=activity, hearing=hearing)

            result.status_changes.append(
                StatusChangeSummary(
                    id=item.id, title=item.title, old_status=old_status, new_status=new_status
                )
            )

        # Display fields are refreshed on every check, not only on status changes
        self.store.patch(
            TRACKED_ITEMS_TABLE,
            {"id": item.id},
            {
                "status": new_status or item.status,
                "next_hearing_date": hearing.date.isoformat() if hearing else None,
                "hearing_type": hearing.hearing_type if hearing else None,
                "hearing_location": (hearing.location or None) if hearing else None,
                "additional_information": details.get("additionalInformation")
                or item.additional_information,
                "committee_re_referral": re_referrals or item.committee_re_referral,
                "latest_activity_date": activity.date.isoformat()
                if activity
                else item.latest_activity_date,
                "latest_activity_label": activity.label if activity else item.latest_activity_label,
                "hearing_checked_at": now.isoformat(),
            },
        )
        return alert

    def match_keywords(
        self, items: list[TrackedItem], now: datetime, result: CheckResult
    ) -> list[KeywordMatch]:
        """Search each tracked keyword and ledger bills not yet tracked or alerted."""
        try:
            keywords = [
                row["keyword"]
                for row in self.store.select(TRACKED_KEYWORDS_TABLE, columns=["keyword"])
                if row.get("keyword")
            ]
            if not keywords:
                return []
            # Snapshot taken once; it guards later runs, not repeats within this one
            alerted = {
                (row["bill_number"], row["keyword"])
                for row in self.store.select(
                    KEYWORD_ALERT_LOG_TABLE, columns=["bill_number", "keyword"]
                )
            }
        except StoreReadFailure as e:
            ErrorCategorizer.log_error(logger, e, "keyword alert ledger")
            result.errors.append({"keyword": None, "error": str(e)})
            return []

        tracked = {i.bill_number for i in items if i.bill_number}
        matches: list[KeywordMatch] = []

        for keyword in keywords:
            try:
                for summary in self.client.search(
                    keyword=keyword, limit=self.settings.keyword_row_limit
                ):
                    bill_number = summary.legislationNumber
                    if not bill_number or bill_number in tracked:
                        continue
                    if (bill_number, keyword) in alerted:
                        continue

                    alert = KeywordAlert(bill_number=bill_number, keyword=keyword, alerted_at=now)
                    self.store.upsert(KEYWORD_ALERT_LOG_TABLE, alert.to_row())
                    matches.append(
                        KeywordMatch(
                            keyword=keyword,
                            bill=bill_number,
                            title=summary.title,
                            status=summary.status,
                        )
                    )
            except TrackerError as e:
                ErrorCategorizer.log_error(logger, e, f"keyword {keyword!r}")
                result.errors.append({"keyword": keyword, "error": str(e)})

            self._sleep(self.settings.keyword_search_delay)

        result.new_keyword_matches.extend(matches)
        return matches

    def _notify(self, send: Callable, events: list, result: CheckResult) -> None:
        try:
            send(events)
        except Exception as e:
            logger.error(f"Notifier failed: {e}", exc_info=True)
            result.errors.append({"notifier": type(e).__name__, "error": str(e)})
