from tracker.hearings.detector import ChangeDetector, status_changed
from tracker.hearings.extraction import (
    DateCandidate,
    DateRule,
    extract_latest_activity,
    extract_next_hearing,
    parse_date,
)
from tracker.hearings.models import CheckResult, KeywordMatch, StatusChangeEvent, TrackedItem
from tracker.hearings.notifier import LoggingNotifier, Notifier

__all__ = [
    "ChangeDetector",
    "CheckResult",
    "DateCandidate",
    "DateRule",
    "KeywordMatch",
    "LoggingNotifier",
    "Notifier",
    "StatusChangeEvent",
    "TrackedItem",
    "extract_latest_activity",
    "extract_next_hearing",
    "parse_date",
    "status_changed",
]
