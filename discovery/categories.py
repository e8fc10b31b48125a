"""
Discovery categories (new, today, mine, near, more)
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Set

from discovery.config import Settings, settings as default_settings
from discovery.data_schemas import CategoryBucket, PoolEntry, Profile
from discovery.geo import distance_km

logger = logging.getLogger(__name__)

CATEGORY_TITLES = {
    CategoryBucket.NEW: "New Matches",
    CategoryBucket.TODAY: "Today's Matches",
    CategoryBucket.MINE: "My Matches",
    CategoryBucket.NEAR: "Near Me",
    CategoryBucket.MORE: "More Matches",
}

SEARCH_CATEGORY = "search"
SEARCH_TITLE = "Search Results"

# buckets built by the engine rather than by the member's own actions
AUTO_BUCKETS = {CategoryBucket.NEW, CategoryBucket.TODAY, CategoryBucket.NEAR, CategoryBucket.MORE}


class CategoryBucketizer:
    """Assigns each candidate to zero or more discovery categories"""

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings

    def is_new(self, entry: PoolEntry, now: datetime) -> bool:
        created = entry.profile.created_at
        if created is None or entry.interaction.viewed:
            return False
        return now - timedelta(days=self.settings.new_window_days) <= created <= now

    @staticmethod
    def is_today(entry: PoolEntry, now: datetime) -> bool:
        # UTC calendar day, independent of the requester's locale
        created = entry.profile.created_at
        return created is not None and created.date() == now.date()

    @staticmethod
    def is_mine(entry: PoolEntry) -> bool:
        return entry.interaction.matched

    def is_near(self, entry: PoolEntry, requester: Profile, distance: Optional[float] = None) -> bool:
        if distance is None:
            distance = distance_km(requester, entry.profile)
        return distance is not None and distance <= self.settings.near_radius_km

    def bucketize(self, entry: PoolEntry, requester: Profile, now: datetime,
                  distance: Optional[float] = None) -> Set[CategoryBucket]:
        """
        Category membership for one candidate; MORE only when no named bucket applies

        Args:
            distance: precomputed requester/candidate distance, if already known
        """
        buckets = set()
        if self.is_new(entry, now):
            buckets.add(CategoryBucket.NEW)
        if self.is_today(entry, now):
            buckets.add(CategoryBucket.TODAY)
        if self.is_mine(entry):
            buckets.add(CategoryBucket.MINE)
        if self.is_near(entry, requester, distance):
            buckets.add(CategoryBucket.NEAR)

        if not buckets:
            buckets.add(CategoryBucket.MORE)
        return buckets

    @staticmethod
    def ordered(buckets: Set[CategoryBucket]):
        return [bucket for bucket in CategoryBucket if bucket in buckets]
