from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tracker.core.models import TrackerModel, ensure_aware
from tracker.hearings.extraction import DateCandidate


class TrackedItem(BaseModel):
    """A user-curated watch entry. Owned by the tracker UI; patched in place here."""

    model_config = ConfigDict(extra="allow")

    id: str
    bill_number: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None
    action_status: Optional[str] = None
    priority: Optional[str] = None
    is_manual_entry: bool = False
    link: Optional[str] = None
    next_hearing_date: Optional[str] = None
    hearing_type: Optional[str] = None
    hearing_location: Optional[str] = None
    latest_activity_date: Optional[str] = None
    latest_activity_label: Optional[str] = None
    additional_information: Any = None
    committee_re_referral: Any = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        # Supabase serial ids arrive as ints
        return str(value) if value is not None else value

    @field_validator("is_manual_entry", mode="before")
    @classmethod
    def coerce_manual_entry(cls, value: Any) -> Any:
        return bool(value)


class StatusChangeEvent(TrackerModel):
    """A row of the append-only status history."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    old_status: str
    new_status: str
    change_label: Optional[str] = None
    changed_at: datetime

    @field_validator("changed_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, value: Any) -> Any:
        return ensure_aware(value)


class KeywordAlert(TrackerModel):
    """A row of the keyword alert ledger."""

    model_config = ConfigDict(frozen=True)

    bill_number: str
    keyword: str
    alerted_at: datetime


class KeywordMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword: str
    bill: str
    title: Optional[str] = None
    status: Optional[str] = None


class StatusChangeAlert(BaseModel):
    """What the notifier needs to describe one status change."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    item: TrackedItem
    event: StatusChangeEvent
    activity: Optional[DateCandidate] = None
    hearing: Optional[DateCandidate] = None


class StatusChangeSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: Optional[str] = None
    old_status: str = Field(alias="oldStatus")
    new_status: str = Field(alias="newStatus")


class CheckResult(BaseModel):
    """Summary returned by every change-detector invocation."""

    model_config = ConfigDict(populate_by_name=True)

    checked: int = 0
    status_changes: list[StatusChangeSummary] = Field(default_factory=list, alias="statusChanges")
    new_keyword_matches: list[KeywordMatch] = Field(default_factory=list, alias="newKeywordMatches")
    errors: list[dict[str, Any]] = Field(default_factory=list)
