"""
Compatibility scoring between a requester and a candidate
"""
import logging
from datetime import date
from typing import Dict, List, Optional

from discovery.config import Settings, settings as default_settings
from discovery.data_schemas import (
    EducationLevel, HabitPreference, LocationTier, Preference, Profile, ScoreResult,
)

logger = logging.getLogger(__name__)

NO_PREFERENCE = "no preference"
ABSTAINING_HABITS = {"no", "never", "none", "non-drinker", "non-smoker", "teetotaler"}

REASONS = {
    "age": "Age matches your preference",
    "height": "Height matches your preference",
    "religion": "Religion matches",
    "location": "Location matches",
    "education": "Education level meets criteria",
    "lifestyle": "Lifestyle matches",
}


def _norm(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


class CompatibilityScorer:
    """Weighted pass/fail scoring over a fixed set of criteria"""

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings
        self.weights: Dict[str, int] = dict(self.settings.scoring_weights)
        self.location_tier = LocationTier(self.settings.location_match_tier)

    @staticmethod
    def _within(value, low, high) -> bool:
        # an unset range or an unknown value is missing data
        if value is None or (low is None and high is None):
            return False
        if low is not None and value < low:
            return False
        if high is not None and value > high:
            return False
        return True

    def check_age(self, candidate: Profile, preference: Preference, today: date) -> bool:
        return self._within(candidate.age_on(today), preference.min_age, preference.max_age)

    def check_height(self, candidate: Profile, preference: Preference) -> bool:
        return self._within(candidate.height_cm, preference.min_height_cm, preference.max_height_cm)

    def check_religion(self, requester: Profile, candidate: Profile, preference: Preference) -> bool:
        accepted = {_norm(r) for r in preference.religions} or {_norm(requester.religion)}
        accepted.discard(None)
        religion = _norm(candidate.religion)
        return religion is not None and religion in accepted

    def check_location(self, requester: Profile, candidate: Profile, preference: Preference) -> bool:
        city, state, country = _norm(candidate.city), _norm(candidate.state), _norm(candidate.country)

        if city and city in {_norm(c) for c in preference.cities}:
            return True
        if state and state in {_norm(s) for s in preference.states}:
            return True

        tiers = [
            (LocationTier.CITY, city, _norm(requester.city)),
            (LocationTier.STATE, state, _norm(requester.state)),
            (LocationTier.COUNTRY, country, _norm(requester.country)),
        ]
        for tier, theirs, ours in tiers:
            if theirs is not None and theirs == ours:
                return True
            if tier == self.location_tier:
                break
        return False

    def check_education(self, requester: Profile, candidate: Profile, preference: Preference) -> bool:
        level = candidate.education_level
        if level is None or level == EducationLevel.NOT_SPECIFIED:
            return False

        required = preference.min_education_level
        if required is not None and required != EducationLevel.NOT_SPECIFIED:
            return level.rank >= required.rank

        own = requester.education_level
        if own is None or own == EducationLevel.NOT_SPECIFIED:
            return False
        return abs(level.rank - own.rank) <= 1

    @staticmethod
    def _habit_fits(candidate_habit: Optional[str], wanted: Optional[HabitPreference],
                    requester_habit: Optional[str]) -> bool:
        habit = _norm(candidate_habit)
        if habit is None:
            return False
        if wanted == HabitPreference.REJECT:
            return habit in ABSTAINING_HABITS
        if wanted in (HabitPreference.ACCEPT, HabitPreference.NO_PREFERENCE):
            return True
        return habit == _norm(requester_habit)

    def check_lifestyle(self, requester: Profile, candidate: Profile, preference: Preference) -> bool:
        diet = _norm(candidate.diet)
        wanted_diet = _norm(preference.diet)
        if diet is None:
            return False
        if wanted_diet == NO_PREFERENCE:
            diet_ok = True
        elif wanted_diet is not None:
            diet_ok = diet == wanted_diet
        else:
            diet_ok = diet == _norm(requester.diet)

        return (
            diet_ok
            and self._habit_fits(candidate.drinking_habit, preference.drinking, requester.drinking_habit)
            and self._habit_fits(candidate.smoking_habit, preference.smoking, requester.smoking_habit)
        )

    def breakdown(self, requester: Profile, preference: Preference, candidate: Profile,
                  today: date) -> Dict[str, bool]:
        return {
            "age": self.check_age(candidate, preference, today),
            "height": self.check_height(candidate, preference),
            "religion": self.check_religion(requester, candidate, preference),
            "location": self.check_location(requester, candidate, preference),
            "education": self.check_education(requester, candidate, preference),
            "lifestyle": self.check_lifestyle(requester, candidate, preference),
        }

    def score(self, requester: Profile, preference: Preference, candidate: Profile,
              today: date) -> ScoreResult:
        """Score 0-100: weighted share of passed criteria, rounded half up"""
        results = self.breakdown(requester, preference, candidate, today)

        total = sum(self.weights.values())
        passed = sum(self.weights[name] for name, ok in results.items() if ok)
        score = (200 * passed + total) // (2 * total)

        reasons = [REASONS[name] for name in self.weights if results.get(name)]

        logger.debug(f"Compatibility {requester.id} -> {candidate.id}: {score} {results}")
        return ScoreResult(score=score, breakdown=results, reasons=reasons)

    @staticmethod
    def common_interests(requester: Profile, candidate: Profile) -> List[str]:
        ours = {_norm(h) for h in requester.hobbies}
        shared = sorted({h.strip() for h in candidate.hobbies if _norm(h) in ours and _norm(h)})
        if _norm(requester.religion) and _norm(requester.religion) == _norm(candidate.religion):
            shared.append(candidate.religion.strip())
        return shared
