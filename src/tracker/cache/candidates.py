"""Generation of the candidate identifier set for a cache build.

Two population sources exist and only one is used per build:

- ``SearchCandidateSource`` pages through SearchLegislation for every declared
  category and keeps identifiers in first-seen order. Preferred whenever the
  search endpoint returns every match.
- ``RangeCandidateSource`` enumerates ``{prefix}{period}-{n:04d}`` for a fixed
  numeric range. A fallback for when search results are capped; many of the
  generated identifiers will not exist upstream.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from tracker.core.error_utils import ErrorCategorizer
from tracker.core.exceptions import UpstreamUnavailable
from tracker.lims.client import LimsClient
from tracker.settings import TrackerSettings

logger = logging.getLogger(__name__)


@dataclass
class CandidateSet:
    ids: list[str] = field(default_factory=list)
    errors: int = 0
    # Search status per identifier, where the source knows it
    statuses: dict[str, str] = field(default_factory=dict)


class CandidateSource(ABC):
    @abstractmethod
    def generate(self) -> CandidateSet:
        """Produce the ordered candidate identifiers for one scope."""


class SearchCandidateSource(CandidateSource):
    def __init__(self, client: LimsClient, category_ids: list[int], council_period: int):
        self.client = client
        self.category_ids = category_ids
        self.council_period = council_period

    def generate(self) -> CandidateSet:
        """Exhaustively paginate search across categories.

        A failing page stops pagination for the whole bootstrap; identifiers
        gathered so far are kept.
        """
        result = CandidateSet()
        seen: set[str] = set()

        for category_id in self.category_ids:
            try:
                for page in self.client.iter_search(
                    category_id=category_id, council_period=self.council_period
                ):
                    for summary in page:
                        bill_number = summary.legislationNumber
                        if not bill_number or bill_number in seen:
                            continue
                        seen.add(bill_number)
                        result.ids.append(bill_number)
                        if summary.status:
                            result.statuses[bill_number] = summary.status
            except UpstreamUnavailable as e:
                ErrorCategorizer.log_error(
                    logger, e, f"search category {category_id}",
                    context={"accumulated": len(result.ids)},
                )
                result.errors += 1
                break

            logger.info(
                f"Category {category_id}: {len(result.ids)} candidates so far",
                extra={"category_id": category_id, "candidates": len(result.ids)},
            )

        return result


class RangeCandidateSource(CandidateSource):
    def __init__(self, prefixes: list[str], council_period: int, range_max: int):
        self.prefixes = prefixes
        self.council_period = council_period
        self.range_max = range_max

    def generate(self) -> CandidateSet:
        ids = [
            f"{prefix}{self.council_period}-{number:04d}"
            for prefix in self.prefixes
            for number in range(1, self.range_max + 1)
        ]
        return CandidateSet(ids=ids)


def candidate_source_for(settings: TrackerSettings, client: LimsClient) -> CandidateSource:
    if settings.candidate_strategy == "range":
        return RangeCandidateSource(
            settings.range_prefixes, settings.council_period, settings.range_max
        )
    return SearchCandidateSource(client, settings.search_category_ids, settings.council_period)
