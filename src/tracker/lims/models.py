from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tracker.core.models import TrackerModel, ensure_aware


class LegislationSummary(BaseModel):
    """One row of a SearchLegislation page. LIMS sends camelCase keys and many extras."""

    model_config = ConfigDict(extra="allow")

    legislationNumber: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None
    category: Optional[str] = None
    introductionDate: Optional[str] = None
    referredToCommittees: Optional[str] = None


class CachedRecord(TrackerModel):
    """A row of the bill cache, keyed by bill number."""

    bill_number: str
    council_period_id: int
    title: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    introduced_by: Optional[str] = None
    co_introducers: Optional[str] = None
    committees: Optional[str] = None
    introduction_date: Optional[str] = None
    additional_information: Any = None
    link: str
    raw_details: dict[str, Any] = Field(default_factory=dict)
    cached_at: datetime

    @field_validator("cached_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, value: Any) -> Any:
        return ensure_aware(value)


def is_populated(details: Any) -> bool:
    """True if a detail payload carries any data at all.

    LIMS answers unknown numbers with 200 and an empty or all-null body as often
    as it answers 404.
    """
    if not isinstance(details, dict):
        return False
    return any(value not in (None, "", [], {}) for value in details.values())


def parse_members(value: Any) -> Optional[str]:
    """Flatten an introducer list into a '; '-joined string of member names."""
    if isinstance(value, list):
        names = [
            member.get("memberName") or str(member) if isinstance(member, dict) else str(member)
            for member in value
        ]
        return "; ".join(names)
    return value or None


def parse_committees(details: dict) -> Optional[str]:
    committees = details.get("committeesReferredTo")
    if isinstance(committees, list):
        return "; ".join(str(c) for c in committees)
    return details.get("referredToCommittees") or None


def map_detail_to_record(
    bill_number: str,
    details: dict,
    council_period: int,
    link_base: str,
    cached_at: datetime,
) -> CachedRecord:
    """Map a LegislationDetails payload onto a cache row."""
    return CachedRecord(
        bill_number=bill_number,
        council_period_id=council_period,
        title=details.get("title"),
        category=details.get("category"),
        status=details.get("status"),
        introduced_by=parse_members(details.get("introducers")),
        co_introducers=parse_members(details.get("coIntroducers")),
        committees=parse_committees(details),
        introduction_date=details.get("introductionDate") or None,
        additional_information=details.get("additionalInformation") or None,
        link=f"{link_base.rstrip('/')}/{bill_number}",
        raw_details=details,
        cached_at=cached_at,
    )
