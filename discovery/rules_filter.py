"""
Hard filters and exclusion rules for the discovery engine
"""
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, ValidationError

from discovery.config import Settings, settings as default_settings
from discovery.data_schemas import (
    CategoryBucket, EducationLevel, FilterCriteria, Gender, PoolEntry,
    Preference, Profile, SortKey, SortOrder,
)
from discovery.errors import (
    ERROR_FILTER_INVALID_RANGE, ERROR_FILTER_NEGATIVE_VALUE,
    ERROR_FILTER_UNKNOWN_VALUE, InvalidFilterError,
)
from discovery.geo import distance_km

logger = logging.getLogger(__name__)

CATEGORY_ALIASES = {"my": CategoryBucket.MINE}


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a and b and a.strip().lower() == b.strip().lower())


def _one_of(value: Optional[str], accepted: Iterable[str]) -> bool:
    return any(_same(value, option) for option in accepted)


def resolve_sort(criteria: FilterCriteria) -> Tuple[SortKey, Optional[SortOrder]]:
    """Sort key (compatibility when unset) and explicit order, if any"""
    try:
        key = SortKey(criteria.sort_by.lower()) if criteria.sort_by else SortKey.COMPATIBILITY
    except ValueError:
        raise InvalidFilterError(
            ERROR_FILTER_UNKNOWN_VALUE,
            message=f"Unknown sort key: {criteria.sort_by}",
            field="sort_by",
            context={"allowed": [k.value for k in SortKey]},
        )
    try:
        order = SortOrder(criteria.sort_order.lower()) if criteria.sort_order else None
    except ValueError:
        raise InvalidFilterError(
            ERROR_FILTER_UNKNOWN_VALUE,
            message=f"Unknown sort order: {criteria.sort_order}",
            field="sort_order",
            context={"allowed": [o.value for o in SortOrder]},
        )
    return key, order


def resolve_category(criteria: FilterCriteria) -> Optional[CategoryBucket]:
    if not criteria.category:
        return None
    slug = criteria.category.strip().lower()
    if slug in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[slug]
    try:
        return CategoryBucket(slug)
    except ValueError:
        raise InvalidFilterError(
            ERROR_FILTER_UNKNOWN_VALUE,
            message=f"Invalid category: {criteria.category}",
            field="category",
            context={"allowed": [c.value for c in CategoryBucket]},
        )


def _check_range(low_name: str, low, high_name: str, high) -> None:
    for name, value in ((low_name, low), (high_name, high)):
        if value is not None and value < 0:
            raise InvalidFilterError(
                ERROR_FILTER_NEGATIVE_VALUE,
                message=f"{name} must not be negative",
                field=name,
                context={"value": value},
            )
    if low is not None and high is not None and low > high:
        raise InvalidFilterError(
            ERROR_FILTER_INVALID_RANGE,
            message=f"{low_name} ({low}) is greater than {high_name} ({high})",
            field=low_name,
            context={low_name: low, high_name: high},
        )


def validate_criteria(criteria: FilterCriteria, preference: Optional[Preference] = None) -> None:
    """Fail fast on malformed or self-contradicting filter values"""
    if criteria.page < 0:
        raise InvalidFilterError(
            ERROR_FILTER_NEGATIVE_VALUE, message="page must not be negative",
            field="page", context={"value": criteria.page},
        )
    if criteria.size is not None and criteria.size < 0:
        raise InvalidFilterError(
            ERROR_FILTER_NEGATIVE_VALUE, message="size must not be negative",
            field="size", context={"value": criteria.size},
        )

    _check_range("min_age", criteria.min_age, "max_age", criteria.max_age)
    _check_range("min_height_cm", criteria.min_height_cm, "max_height_cm", criteria.max_height_cm)
    _check_range("min_income", criteria.min_income, "max_income", criteria.max_income)
    if criteria.max_distance_km is not None and criteria.max_distance_km < 0:
        raise InvalidFilterError(
            ERROR_FILTER_NEGATIVE_VALUE, message="max_distance_km must not be negative",
            field="max_distance_km", context={"value": criteria.max_distance_km},
        )

    if preference is not None:
        _check_range("preference.min_age", preference.min_age, "preference.max_age", preference.max_age)
        _check_range("preference.min_height_cm", preference.min_height_cm,
                     "preference.max_height_cm", preference.max_height_cm)
        _check_range("preference.min_income", preference.min_income,
                     "preference.max_income", preference.max_income)

    resolve_sort(criteria)
    resolve_category(criteria)


class FilterOutcome(BaseModel):
    """Survivors of the filter stage plus diagnostics"""
    entries: List[PoolEntry] = Field(default_factory=list)
    skipped: int = 0
    excluded: Dict[str, str] = Field(default_factory=dict)


class FilterEngine:
    """Narrows a candidate pool by hard filters, preferences and exclusion toggles"""

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings

    @staticmethod
    def _range(criteria_low, criteria_high, pref_low, pref_high):
        # a criteria range replaces the preference range as a whole
        if criteria_low is not None or criteria_high is not None:
            return criteria_low, criteria_high
        return pref_low, pref_high

    @staticmethod
    def check_range(value, low, high) -> bool:
        if low is None and high is None:
            return True
        if value is None:
            return False
        if low is not None and value < low:
            return False
        if high is not None and value > high:
            return False
        return True

    def check_gender(self, candidate: Profile, requester: Profile, criteria: FilterCriteria) -> bool:
        wanted: Optional[Gender] = criteria.preferred_gender
        if wanted is None and requester.gender is not None:
            wanted = requester.gender.opposite
        if wanted is None:
            return True
        return candidate.gender == wanted

    def check_online(self, candidate: Profile, now: datetime) -> bool:
        if candidate.last_active is None:
            return False
        return now - candidate.last_active <= timedelta(minutes=self.settings.online_window_minutes)

    def is_valid_match(self, entry: PoolEntry, requester: Profile, criteria: FilterCriteria,
                       preference: Preference, now: datetime) -> Tuple[bool, str]:
        """
        Run every active predicate against one candidate

        Returns:
            Tuple[bool, str]: (passed, reason for the first failing predicate)
        """
        candidate = entry.profile
        interaction = entry.interaction

        # exclusion toggles
        if criteria.exclude_blocked and interaction.blocked:
            return False, "blocked"
        if criteria.exclude_already_liked and interaction.liked:
            return False, "already liked"
        if criteria.exclude_viewed and interaction.viewed:
            return False, "already viewed"
        if criteria.exclude_matched and interaction.matched:
            return False, "already matched"

        if (criteria.only_verified or preference.verified_only) and not candidate.is_verified:
            return False, "not verified"
        if criteria.only_with_photos and not candidate.photo_references():
            return False, "no photos"
        if criteria.only_online and not self.check_online(candidate, now):
            return False, "not online"

        if not self.check_gender(candidate, requester, criteria):
            return False, f"gender {candidate.gender.value if candidate.gender else 'unknown'} not wanted"

        # hard ranges
        min_age, max_age = self._range(criteria.min_age, criteria.max_age,
                                       preference.min_age, preference.max_age)
        age = candidate.age_on(now.date())
        if not self.check_range(age, min_age, max_age):
            return False, f"age {age} outside [{min_age}, {max_age}]"

        min_height, max_height = self._range(criteria.min_height_cm, criteria.max_height_cm,
                                             preference.min_height_cm, preference.max_height_cm)
        if not self.check_range(candidate.height_cm, min_height, max_height):
            return False, f"height {candidate.height_cm} outside [{min_height}, {max_height}]"

        min_income, max_income = self._range(criteria.min_income, criteria.max_income,
                                             preference.min_income, preference.max_income)
        if not self.check_range(candidate.annual_income, min_income, max_income):
            return False, f"income {candidate.annual_income} outside [{min_income}, {max_income}]"

        # hard equality
        if criteria.city and not _same(candidate.city, criteria.city):
            return False, f"city {candidate.city} is not {criteria.city}"
        if criteria.education_level:
            wanted = EducationLevel.from_label(criteria.education_level)
            if candidate.education_level != wanted:
                return False, f"education {candidate.education_level} is not {wanted.value}"
        if criteria.occupation and not _same(candidate.occupation, criteria.occupation):
            return False, f"occupation {candidate.occupation} is not {criteria.occupation}"

        if criteria.marital_status:
            status = candidate.marital_status.value if candidate.marital_status else None
            if not _same(status, criteria.marital_status):
                return False, f"marital status {status} is not {criteria.marital_status}"
        elif preference.marital_statuses and candidate.marital_status not in preference.marital_statuses:
            return False, "marital status not preferred"

        if criteria.max_distance_km is not None:
            distance = distance_km(requester, candidate)
            if distance is None or distance > criteria.max_distance_km:
                return False, f"distance {distance} exceeds {criteria.max_distance_km} km"

        # soft preferences, overridable per request
        religions = [criteria.preferred_religion] if criteria.preferred_religion else preference.religions
        if religions and not _one_of(candidate.religion, religions):
            return False, f"religion {candidate.religion} not preferred"
        castes = [criteria.preferred_caste] if criteria.preferred_caste else preference.castes
        if castes and not _one_of(candidate.caste, castes):
            return False, f"caste {candidate.caste} not preferred"
        tongues = ([criteria.preferred_mother_tongue] if criteria.preferred_mother_tongue
                   else preference.mother_tongues)
        if tongues and not _one_of(candidate.mother_tongue, tongues):
            return False, f"mother tongue {candidate.mother_tongue} not preferred"

        return True, "passes all filters"

    def _normalize(self, raw: Union[PoolEntry, Dict[str, Any]]) -> Optional[PoolEntry]:
        if isinstance(raw, PoolEntry):
            entry = raw
        else:
            try:
                entry = PoolEntry.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed candidate: {e.error_count()} validation errors")
                return None
        if not entry.profile.id or not entry.profile.id.strip():
            logger.warning("Skipping candidate without an id")
            return None
        return entry

    def apply(self, pool: Sequence[Union[PoolEntry, Dict[str, Any]]], criteria: FilterCriteria,
              preference: Preference, requester: Profile, now: datetime) -> FilterOutcome:
        """
        Filter a candidate pool

        Returns:
            FilterOutcome: survivors ordered by candidate id, skipped tally, exclusion reasons
        """
        outcome = FilterOutcome()
        entries = []
        for raw in pool:
            entry = self._normalize(raw)
            if entry is None:
                outcome.skipped += 1
            else:
                entries.append(entry)

        # an id seen twice is ambiguous, so no copy of it survives
        counts = Counter(entry.profile.id for entry in entries)

        for entry in entries:
            candidate_id = entry.profile.id
            if counts[candidate_id] > 1:
                logger.warning(f"Skipping duplicate candidate {candidate_id}")
                outcome.skipped += 1
                continue

            # never propose the requester to themselves
            if candidate_id == requester.id:
                outcome.excluded[candidate_id] = "self"
                continue

            passed, reason = self.is_valid_match(entry, requester, criteria, preference, now)
            if passed:
                outcome.entries.append(entry)
            else:
                outcome.excluded[candidate_id] = reason
                logger.debug(f"Excluded {candidate_id}: {reason}")

        outcome.entries.sort(key=lambda e: e.profile.id)
        logger.info(f"Filtered {len(pool)} candidates to {len(outcome.entries)} "
                    f"({outcome.skipped} skipped)")
        return outcome
