"""
Discovery pipeline: filter -> score -> categorize -> photo policy -> assemble
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from discovery.assembler import ResultAssembler
from discovery.categories import AUTO_BUCKETS, CategoryBucketizer
from discovery.config import Settings, settings as default_settings
from discovery.data_schemas import (
    CategoryBucket, FilterCriteria, MatchCategorySummary, MatchListResponse,
    MatchResult, MatchStatsResponse, PoolEntry, Preference, Profile, as_utc,
)
from discovery.errors import (
    ERROR_REQUESTER_PREFERENCE_MISSING, ERROR_REQUESTER_PROFILE_MISSING,
    MissingRequesterError,
)
from discovery.events import EventDispatcher, MutualMatchEvent
from discovery.geo import distance_km, distance_text
from discovery.photo_policy import PhotoAccessPolicy, action_flags
from discovery.rules_filter import (
    FilterEngine, resolve_category, resolve_sort, validate_criteria,
)
from discovery.scoring import CompatibilityScorer

logger = logging.getLogger(__name__)

Pool = Sequence[Union[PoolEntry, Dict[str, Any]]]


class DiscoveryEngine:
    """Stateless per request; safe to share between concurrent requests"""

    def __init__(self, config: Optional[Settings] = None,
                 dispatcher: Optional[EventDispatcher] = None):
        self.settings = config or default_settings
        self.dispatcher = dispatcher
        self.filter_engine = FilterEngine(self.settings)
        self.scorer = CompatibilityScorer(self.settings)
        self.bucketizer = CategoryBucketizer(self.settings)
        self.photo_policy = PhotoAccessPolicy(self.settings)
        self.assembler = ResultAssembler(self.settings)

    @staticmethod
    def _require(requester: Optional[Profile], preference: Optional[Preference]) -> None:
        if requester is None:
            raise MissingRequesterError(ERROR_REQUESTER_PROFILE_MISSING,
                                        message="Complete your profile first", field="requester")
        if preference is None:
            raise MissingRequesterError(ERROR_REQUESTER_PREFERENCE_MISSING,
                                        message="Please set your partner preferences first",
                                        field="preference", context={"profile_id": requester.id})
        if preference.profile_id != requester.id:
            raise MissingRequesterError(ERROR_REQUESTER_PREFERENCE_MISSING,
                                        message="Preference belongs to another profile",
                                        field="preference",
                                        context={"profile_id": requester.id,
                                                 "preference_owner": preference.profile_id})

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        return as_utc(now) if now is not None else datetime.now(timezone.utc)

    def evaluate(self, entry: PoolEntry, requester: Profile, preference: Preference,
                 requester_is_premium: bool, now: datetime) -> MatchResult:
        """Score, categorize and resolve photos for one candidate"""
        candidate = entry.profile
        interaction = entry.interaction

        distance = distance_km(requester, candidate)
        score = self.scorer.score(requester, preference, candidate, now.date())
        buckets = self.bucketizer.bucketize(entry, requester, now, distance)
        photos = self.photo_policy.resolve_profile(candidate, requester_is_premium, interaction)
        online = self.filter_engine.check_online(candidate, now)

        return MatchResult(
            candidate_id=candidate.id,
            full_name=candidate.full_name,
            gender=candidate.gender,
            age=candidate.age_on(now.date()),
            height_cm=candidate.height_cm,
            city=candidate.city,
            occupation=candidate.occupation,
            education_level=candidate.education_level,
            religion=candidate.religion,
            caste=candidate.caste,
            compatibility_score=score.score,
            compatibility_percentage=score.percentage,
            breakdown=score.breakdown,
            match_reason=score.match_reason,
            common_interests=self.scorer.common_interests(requester, candidate),
            is_premium_match=score.is_premium_match,
            categories=self.bucketizer.ordered(buckets),
            distance_km=distance,
            distance_text=distance_text(requester, candidate, distance),
            primary_photo=photos[0] if photos and photos[0].slot == 1 else None,
            photos=photos[1:],
            actions=action_flags(interaction),
            is_liked=interaction.liked,
            is_matched=interaction.matched,
            is_viewed=interaction.viewed,
            is_online=online,
            is_recently_active=online,
            is_verified=candidate.is_verified,
            is_premium=candidate.is_premium,
            is_new_today=CategoryBucket.TODAY in buckets,
            last_active=candidate.last_active,
            created_at=candidate.created_at,
            matched_at=interaction.matched_at,
        )

    def _evaluate_all(self, entries: List[PoolEntry], requester: Profile, preference: Preference,
                      requester_is_premium: bool, now: datetime) -> List[MatchResult]:
        if not entries:
            return []
        workers = min(len(entries), self.settings.worker_limit)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(
                lambda entry: self.evaluate(entry, requester, preference, requester_is_premium, now),
                entries,
            ))

    def _emit_mutual_matches(self, entries: List[PoolEntry], requester: Profile,
                             now: datetime) -> None:
        if self.dispatcher is None:
            return
        for entry in entries:
            interaction = entry.interaction
            if interaction.liked and interaction.liked_by_candidate and not interaction.matched:
                self.dispatcher.publish(MutualMatchEvent(
                    requester_id=requester.id,
                    candidate_id=entry.profile.id,
                    detected_at=now,
                ))

    @staticmethod
    def is_listed(result: MatchResult, bucket: CategoryBucket, preference: Preference) -> bool:
        """Bucket membership, minus auto buckets the member's score threshold hides"""
        if bucket not in result.categories:
            return False
        if bucket in AUTO_BUCKETS and preference.auto_match_enabled:
            return result.compatibility_score >= preference.match_score_threshold
        return True

    def _run(self, requester: Optional[Profile], preference: Optional[Preference], pool: Pool,
             criteria: FilterCriteria, now: datetime,
             requester_is_premium: Optional[bool]) -> Tuple[List[MatchResult], List[PoolEntry], int]:
        self._require(requester, preference)
        validate_criteria(criteria, preference)

        premium = requester.is_premium if requester_is_premium is None else requester_is_premium
        outcome = self.filter_engine.apply(pool, criteria, preference, requester, now)
        results = self._evaluate_all(outcome.entries, requester, preference, premium, now)
        self._emit_mutual_matches(outcome.entries, requester, now)
        return results, outcome.entries, outcome.skipped

    def discover(self, requester: Optional[Profile], preference: Optional[Preference], pool: Pool,
                 criteria: Optional[FilterCriteria] = None, now: Optional[datetime] = None,
                 requester_is_premium: Optional[bool] = None) -> MatchListResponse:
        """
        Build one page of a discovery listing

        Args:
            requester: resolved profile of the caller
            preference: the caller's partner preference
            pool: candidate pool from the persistence collaborator
            criteria: request filters; category None means a plain search
            now: evaluation instant (UTC); defaults to the current time
            requester_is_premium: premium flag from the identity collaborator,
                defaults to the requester profile's flag

        Returns:
            MatchListResponse
        """
        criteria = criteria or FilterCriteria()
        now = self._now(now)

        results, _, skipped = self._run(requester, preference, pool, criteria, now, requester_is_premium)
        sort_by, sort_order = resolve_sort(criteria)
        category = resolve_category(criteria)

        if category is not None:
            results = [r for r in results if self.is_listed(r, category, preference)]

        return self.assembler.assemble(results, sort_by, sort_order, criteria.page, criteria.size,
                                       category=category, skipped=skipped)

    def stats(self, requester: Optional[Profile], preference: Optional[Preference], pool: Pool,
              criteria: Optional[FilterCriteria] = None,
              now: Optional[datetime] = None) -> MatchStatsResponse:
        criteria = criteria or FilterCriteria()
        now = self._now(now)

        results, entries, _ = self._run(requester, preference, pool, criteria, now, None)
        mutual_likes = sum(1 for entry in entries if entry.interaction.is_mutual_like)
        return self.assembler.stats(
            results, now, mutual_likes,
            listed=lambda result, bucket: self.is_listed(result, bucket, preference),
        )

    def categories(self, requester: Optional[Profile], preference: Optional[Preference], pool: Pool,
                   criteria: Optional[FilterCriteria] = None,
                   now: Optional[datetime] = None) -> List[MatchCategorySummary]:
        return self.assembler.category_summaries(self.stats(requester, preference, pool, criteria, now))
