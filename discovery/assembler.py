"""
Sorting, pagination and response assembly
"""
import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from discovery.categories import CATEGORY_TITLES, SEARCH_CATEGORY, SEARCH_TITLE
from discovery.config import Settings, settings as default_settings
from discovery.data_schemas import (
    CategoryBucket, MatchCategorySummary, MatchListResponse, MatchResult,
    MatchStatsResponse, SortKey, SortOrder,
)

logger = logging.getLogger(__name__)

# default direction per key
DEFAULT_ORDER = {
    SortKey.COMPATIBILITY: SortOrder.DESC,
    SortKey.RECENT: SortOrder.DESC,
    SortKey.DISTANCE: SortOrder.ASC,
    SortKey.AGE: SortOrder.ASC,
}

SORT_VALUES: Dict[SortKey, Callable[[MatchResult], Any]] = {
    SortKey.COMPATIBILITY: lambda m: m.compatibility_score,
    SortKey.RECENT: lambda m: m.created_at,
    SortKey.DISTANCE: lambda m: m.distance_km,
    SortKey.AGE: lambda m: m.age,
}


class ResultAssembler:
    """Orders scored candidates and cuts a page out of them"""

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings

    def clamp_size(self, size: Optional[int]) -> int:
        if size is None:
            size = self.settings.default_page_size
        return max(1, min(size, self.settings.max_page_size))

    @staticmethod
    def sort(results: Sequence[MatchResult], sort_by: SortKey,
             sort_order: Optional[SortOrder] = None) -> List[MatchResult]:
        """
        New list ordered by the sort key; ties by candidate id ascending and
        candidates without a value for the key always last
        """
        order = sort_order or DEFAULT_ORDER[sort_by]
        value_of = SORT_VALUES[sort_by]

        by_id = sorted(results, key=lambda m: m.candidate_id)
        present = [m for m in by_id if value_of(m) is not None]
        missing = [m for m in by_id if value_of(m) is None]

        # sorted() is stable in both directions, so id order survives ties
        present = sorted(present, key=value_of, reverse=order == SortOrder.DESC)
        return present + missing

    @staticmethod
    def page_bounds(total: int, page: int, size: int) -> Tuple[int, int, int]:
        total_pages = math.ceil(total / size) if total else 0
        start = min(page * size, total)
        end = min(start + size, total)
        return start, end, total_pages

    def assemble(self, scored: Sequence[MatchResult], sort_by: SortKey,
                 sort_order: Optional[SortOrder], page: int, size: Optional[int],
                 category: Optional[CategoryBucket] = None, skipped: int = 0) -> MatchListResponse:
        size = self.clamp_size(size)
        ordered = self.sort(scored, sort_by, sort_order)
        start, end, total_pages = self.page_bounds(len(ordered), page, size)

        if category is None:
            slug, title = SEARCH_CATEGORY, SEARCH_TITLE
        else:
            slug, title = category.value, CATEGORY_TITLES[category]

        logger.info(f"Assembled {slug} page {page} ({end - start} of {len(ordered)})")
        return MatchListResponse(
            category=slug,
            title=title,
            total_count=len(ordered),
            matches=ordered[start:end],
            page=page,
            size=size,
            total_pages=total_pages,
            has_next=page + 1 < total_pages,
            has_previous=page > 0,
            skipped=skipped,
        )

    @staticmethod
    def stats(results: Sequence[MatchResult], now: datetime, mutual_likes: int,
              listed: Optional[Callable[[MatchResult, CategoryBucket], bool]] = None) -> MatchStatsResponse:
        """Counts every bucket membership independently"""
        counts = {bucket: 0 for bucket in CategoryBucket}
        for result in results:
            for bucket in result.categories:
                if listed is None or listed(result, bucket):
                    counts[bucket] += 1

        return MatchStatsResponse(
            new_matches=counts[CategoryBucket.NEW],
            todays_matches=counts[CategoryBucket.TODAY],
            my_matches=counts[CategoryBucket.MINE],
            near_me_matches=counts[CategoryBucket.NEAR],
            more_matches=counts[CategoryBucket.MORE],
            total_matches=len(results),
            unviewed_matches=sum(1 for r in results if not r.is_viewed),
            mutual_likes=mutual_likes,
            last_updated=now,
        )

    @staticmethod
    def category_summaries(stats: MatchStatsResponse) -> List[MatchCategorySummary]:
        counts = {
            CategoryBucket.NEW: stats.new_matches,
            CategoryBucket.TODAY: stats.todays_matches,
            CategoryBucket.MINE: stats.my_matches,
            CategoryBucket.NEAR: stats.near_me_matches,
            CategoryBucket.MORE: stats.more_matches,
        }
        return [
            MatchCategorySummary(slug=bucket.value, name=CATEGORY_TITLES[bucket], count=counts[bucket])
            for bucket in CategoryBucket
        ]
