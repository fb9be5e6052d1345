from .client import LimsClient
from .models import CachedRecord, LegislationSummary, map_detail_to_record

__all__ = [
    "CachedRecord",
    "LegislationSummary",
    "LimsClient",
    "map_detail_to_record",
]
