import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# LIMS (DC Council Legislative Information Management System)
LIMS_BASE_URL = "https://lims.dccouncil.gov/api/v2"
LIMS_LINK_BASE = "https://lims.dccouncil.gov/Legislation"
COUNCIL_PERIOD = 26

# Store tables
BILL_CACHE_TABLE = "lims_bill_cache"
CURSOR_TABLE = "lims_cache_cursor"
TRACKED_ITEMS_TABLE = "tracked_items"
TRACKED_KEYWORDS_TABLE = "tracked_keywords"
STATUS_HISTORY_TABLE = "bill_status_history"
KEYWORD_ALERT_LOG_TABLE = "keyword_alert_log"

PRIMARY_KEYS = {
    BILL_CACHE_TABLE: ("bill_number",),
    CURSOR_TABLE: ("scope_key",),
    TRACKED_ITEMS_TABLE: ("id",),
    TRACKED_KEYWORDS_TABLE: ("keyword",),
    STATUS_HISTORY_TABLE: ("id",),
    KEYWORD_ALERT_LOG_TABLE: ("bill_number", "keyword"),
}

# Identifier prefixes used when enumerating a numeric range per category:
# B = Bill, PR = Proposed Resolution, CER = Ceremonial Resolution
RANGE_PREFIXES = ["B", "PR", "CER"]

# action_status values whose status changes trigger an immediate alert
ALERT_ACTION_STATUSES = ["action_needed", "monitor_and_assess"]


class TrackerSettings(BaseModel):
    """Runtime configuration handed to the driver, detector and store at construction."""

    lims_base_url: str = LIMS_BASE_URL
    lims_link_base: str = LIMS_LINK_BASE
    council_period: int = COUNCIL_PERIOD

    # Cache build
    batch_size: int = Field(default=20, gt=0)
    page_size: int = Field(default=100, gt=0)
    detail_delay: float = Field(default=1.2, ge=0)
    skip_delay: float = Field(default=0.3, ge=0)
    page_delay: float = Field(default=0.8, ge=0)
    candidate_strategy: Literal["search", "range"] = "search"
    search_category_ids: list[int] = Field(default_factory=lambda: [0])
    range_prefixes: list[str] = Field(default_factory=lambda: list(RANGE_PREFIXES))
    range_max: int = Field(default=999, gt=0)
    # Skip refetching rows cached this recently (0 = always refetch). With the search
    # strategy a status change seen in search also forces a refetch; range candidates
    # carry no status, so for them only the row age counts.
    refresh_after_days: int = Field(default=0, ge=0)

    # Hearing / status checks
    hearing_check_delay: float = Field(default=1.5, ge=0)
    keyword_search_delay: float = Field(default=1.0, ge=0)
    keyword_row_limit: int = Field(default=20, gt=0)
    alert_action_statuses: list[str] = Field(
        default_factory=lambda: list(ALERT_ACTION_STATUSES)
    )

    # Invocation auth
    cron_secret: Optional[str] = None
    scheduler_header: str = "x-vercel-cron"
    scheduler_header_value: str = "1"

    # Record store
    store_backend: Literal["supabase", "diskcache"] = "diskcache"
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    store_dir: str = os.path.join("data", "store")

    # HTTP
    min_request_interval: float = Field(default=0.5, ge=0)
    request_timeout: float = 30.0
    max_retries: int = Field(default=3, ge=1)

    @property
    def scope_key(self) -> str:
        """Cursor scope for the configured council period."""
        return f"council_period_{self.council_period}"


def _env_list(name: str) -> Optional[list[str]]:
    value = os.environ.get(name)
    if not value:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def load_settings() -> TrackerSettings:
    """Build settings from environment variables (and a .env file if present)."""
    load_dotenv()

    values = {
        "lims_base_url": os.environ.get("LIMS_API_BASE"),
        "council_period": os.environ.get("COUNCIL_PERIOD"),
        "batch_size": os.environ.get("CACHE_BATCH_SIZE"),
        "detail_delay": os.environ.get("CACHE_DETAIL_DELAY"),
        "skip_delay": os.environ.get("CACHE_SKIP_DELAY"),
        "page_delay": os.environ.get("CACHE_PAGE_DELAY"),
        "candidate_strategy": os.environ.get("CACHE_CANDIDATE_STRATEGY"),
        "search_category_ids": _env_list("CACHE_SEARCH_CATEGORY_IDS"),
        "range_prefixes": _env_list("CACHE_RANGE_PREFIXES"),
        "range_max": os.environ.get("CACHE_RANGE_MAX"),
        "refresh_after_days": os.environ.get("CACHE_REFRESH_AFTER_DAYS"),
        "cron_secret": os.environ.get("CRON_SECRET"),
        "store_backend": os.environ.get("STORE_BACKEND"),
        "supabase_url": os.environ.get("SUPABASE_URL"),
        "supabase_service_key": os.environ.get("SUPABASE_SERVICE_KEY"),
        "store_dir": os.environ.get("STORE_DIR"),
    }

    # Supabase is the default store whenever credentials are present
    if values["store_backend"] is None and values["supabase_url"]:
        values["store_backend"] = "supabase"

    return TrackerSettings(**{k: v for k, v in values.items() if v is not None})
