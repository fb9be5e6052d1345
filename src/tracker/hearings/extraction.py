"""Activity and hearing dates from LegislationDetails payloads.

Detail payloads carry dates in many shapes: flat fields, review sub-objects,
and arrays of dated events. Each shape is described by a ``DateRule``; every
rule is applied the same way to collect labelled ``DateCandidate``s, and the
latest-activity / next-hearing choices are made over that single list.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Union

logger = logging.getLogger(__name__)

# Dates at or before this year are placeholders (0001-01-01, 1900-01-01 ...)
MIN_PLAUSIBLE_YEAR = 2000

DATE_FORMATS = ["%m/%d/%Y", "%m/%d/%Y %I:%M:%S %p", "%m/%d/%Y %H:%M"]


@dataclass(frozen=True)
class DateCandidate:
    date: datetime
    label: str
    hearing_type: Optional[str] = None
    location: Optional[str] = None


def _always(entry: dict, now: datetime) -> bool:
    return True


@dataclass(frozen=True)
class DateRule:
    """One date-bearing shape in a detail payload.

    Attributes:
        extractor: Returns the sub-objects to inspect (the payload itself, a
            review object, or the entries of an event array)
        field: Name of the date field on each sub-object
        label: Fixed label, or a callable building one from the sub-object
        predicate: Filter on (sub-object, now)
        location_field: Sub-object field holding a location, for hearings
    """

    extractor: Callable[[dict], Iterable[dict]]
    field: str
    label: Union[str, Callable[[dict], str]]
    predicate: Callable[[dict, datetime], bool] = _always
    location_field: Optional[str] = None

    def apply(self, details: dict, now: datetime) -> Iterable[DateCandidate]:
        for entry in self.extractor(details):
            if not isinstance(entry, dict) or not self.predicate(entry, now):
                continue
            date = parse_date(entry.get(self.field))
            if date is None:
                continue
            label = self.label(entry) if callable(self.label) else self.label
            location = entry.get(self.location_field) if self.location_field else None
            yield DateCandidate(date=date, label=label, hearing_type=label, location=location or "")


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 or US-style date into an aware UTC datetime.

    Returns None for empty, unparseable and implausible (year <= 2000) values.
    """
    if not value or not isinstance(value, str):
        return None

    parsed = None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(value.strip(), fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        logger.debug(f"Unparseable date: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    if parsed.year <= MIN_PLAUSIBLE_YEAR:
        return None
    return parsed


def _root(details: dict) -> list[dict]:
    return [details]


def _child(key: str) -> Callable[[dict], list[dict]]:
    def extract(details: dict) -> list[dict]:
        value = details.get(key)
        return [value] if isinstance(value, dict) else []
    return extract


def _items(key: str) -> Callable[[dict], list[dict]]:
    def extract(details: dict) -> list[dict]:
        value = details.get(key)
        return value if isinstance(value, list) else []
    return extract


def _action_label(entry: dict) -> str:
    action = entry.get("action")
    return action.strip() if isinstance(action, str) and action.strip() else "Council Action"


def _hearing_label(entry: dict) -> str:
    return entry.get("hearingType") or "Committee Hearing"


def _hearing_held(entry: dict, now: datetime) -> bool:
    date = parse_date(entry.get("hearingDate"))
    return date is not None and date <= now


ACTIVITY_RULES = [
    DateRule(_child("congressionalReview"), "effectiveDate", "Effective Date (Law)"),
    DateRule(_child("congressionalReview"), "lawPublicationDate", "Law Published"),
    DateRule(_child("congressionalReview"), "transmittedDate", "Transmitted to Congress"),
    DateRule(_child("mayoralReview"), "enactedDate", "Enacted"),
    DateRule(_child("mayoralReview"), "signedDate", "Signed by Mayor"),
    DateRule(_child("mayoralReview"), "returnedDate", "Returned by Mayor"),
    DateRule(_child("mayoralReview"), "actPublicationDate", "Act Published"),
    DateRule(_child("mayoralReview"), "transmittedDate", "Transmitted to Mayor"),
    DateRule(_items("actions"), "actionDate", _action_label),
    DateRule(_items("committeeMarkup"), "reportFiledDate", "Committee Report Filed"),
    DateRule(_items("committeeMarkup"), "committeeActionDate", "Committee Markup"),
    # Scheduled hearings only count as activity once they have happened
    DateRule(_items("committeeHearing"), "hearingDate", _hearing_label, predicate=_hearing_held),
    DateRule(_items("committeeReReferral"), "reReferralDate", "Committee Re-Referral"),
    DateRule(_items("committeeReReferral"), "reReferralPublishedDate", "Re-Referral Published"),
    DateRule(_root, "introductionPublicationDate", "Introduction Published"),
    DateRule(_root, "introductionDate", "Introduced"),
]

HEARING_RULES = [
    DateRule(_items("committeeHearing"), "hearingDate", _hearing_label, location_field="location"),
    DateRule(_items("committeeMarkup"), "committeeActionDate", "Committee Markup", location_field="location"),
]


def collect_candidates(details: dict, rules: list[DateRule], now: datetime) -> list[DateCandidate]:
    candidates = []
    for rule in rules:
        candidates.extend(rule.apply(details, now))
    return candidates


def extract_latest_activity(details: dict, now: datetime) -> Optional[DateCandidate]:
    """The most recent dated event; the earliest-listed rule wins ties."""
    candidates = collect_candidates(details, ACTIVITY_RULES, now)
    if not candidates:
        return None
    return max(candidates, key=lambda c: c.date)


def extract_next_hearing(details: dict, now: datetime) -> Optional[DateCandidate]:
    """The earliest hearing or markup strictly after ``now``; never a past one."""
    upcoming = [c for c in collect_candidates(details, HEARING_RULES, now) if c.date > now]
    if not upcoming:
        return None
    return min(upcoming, key=lambda c: c.date)
