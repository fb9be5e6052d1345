import logging
from abc import ABC, abstractmethod

from tracker.hearings.models import KeywordMatch, StatusChangeAlert

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Receives change events once per detector run. Rendering and delivery live elsewhere."""

    @abstractmethod
    def notify_status_changes(self, alerts: list[StatusChangeAlert]) -> None:
        ...

    @abstractmethod
    def notify_keyword_matches(self, matches: list[KeywordMatch]) -> None:
        ...


class LoggingNotifier(Notifier):
    """Default notifier: one structured log line per event."""

    def notify_status_changes(self, alerts: list[StatusChangeAlert]) -> None:
        for alert in alerts:
            logger.info(
                f"Status change for {alert.item.bill_number}: "
                f"{alert.event.old_status} -> {alert.event.new_status}",
                extra={
                    "event_type": "status_change",
                    "item_id": alert.item.id,
                    "bill_number": alert.item.bill_number,
                    "priority": alert.item.priority,
                    "next_hearing": alert.hearing.date.isoformat() if alert.hearing else None,
                },
            )

    def notify_keyword_matches(self, matches: list[KeywordMatch]) -> None:
        for match in matches:
            logger.info(
                f"New bill {match.bill} matches keyword {match.keyword!r}",
                extra={"event_type": "keyword_match", "bill_number": match.bill, "keyword": match.keyword},
            )
