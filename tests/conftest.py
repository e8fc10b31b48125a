"""
Shared fixtures for the discovery tests
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from discovery.data_schemas import (
    ActionFlags, EducationLevel, Gender, HabitPreference, InteractionState,
    MatchResult, PoolEntry, Preference, Profile,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def requester():
    """Requester - male, 30, Mumbai"""
    return Profile(
        id="req_001",
        full_name="Arjun",
        gender=Gender.MALE,
        date_of_birth=date(1994, 1, 10),
        height_cm=178,
        religion="Hindu",
        caste="Brahmin",
        mother_tongue="Marathi",
        diet="Vegetarian",
        drinking_habit="No",
        smoking_habit="No",
        hobbies=["Reading", "Travel"],
        education_level=EducationLevel.MASTERS,
        occupation="Software Engineer",
        country="India",
        state="Maharashtra",
        city="Mumbai",
        latitude=19.0760,
        longitude=72.8777,
        is_verified=True,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        last_active=NOW,
        photos=["/uploads/req_001/photo_1.jpg"],
    )


@pytest.fixture
def preference():
    return Preference(
        profile_id="req_001",
        min_age=24,
        max_age=32,
        min_height_cm=150,
        max_height_cm=175,
        religions=["Hindu"],
        min_education_level=EducationLevel.BACHELORS,
        diet="Vegetarian",
        drinking=HabitPreference.REJECT,
        smoking=HabitPreference.REJECT,
    )


@pytest.fixture
def make_candidate():
    """Factory for a candidate that matches the requester on every criterion unless overridden"""
    def _make(candidate_id="cand_001", **overrides):
        fields = dict(
            id=candidate_id,
            full_name="Priya",
            gender=Gender.FEMALE,
            date_of_birth=date(1996, 3, 1),
            height_cm=162,
            religion="Hindu",
            caste="Brahmin",
            mother_tongue="Marathi",
            diet="Vegetarian",
            drinking_habit="No",
            smoking_habit="No",
            hobbies=["Travel", "Music"],
            education_level=EducationLevel.BACHELORS,
            occupation="Architect",
            country="India",
            state="Maharashtra",
            city="Mumbai",
            latitude=19.0800,
            longitude=72.8800,
            is_verified=True,
            created_at=NOW - timedelta(hours=2),
            last_active=NOW - timedelta(minutes=2),
            photos=[f"/uploads/{candidate_id}/photo_{i}.jpg" for i in range(1, 4)],
        )
        fields.update(overrides)
        return Profile(**fields)
    return _make


@pytest.fixture
def make_entry(make_candidate):
    def _make(candidate_id="cand_001", interaction=None, **overrides):
        return PoolEntry(
            profile=make_candidate(candidate_id, **overrides),
            interaction=interaction or InteractionState(),
        )
    return _make


@pytest.fixture
def make_result():
    """Factory for bare MatchResult rows used by the assembler tests"""
    def _make(candidate_id, score=50, **overrides):
        fields = dict(
            candidate_id=candidate_id,
            compatibility_score=score,
            compatibility_percentage=f"{score}%",
            actions=ActionFlags(can_like=True, can_chat=False, can_view_profile=True,
                                can_block=True, is_blocked=False),
        )
        fields.update(overrides)
        return MatchResult(**fields)
    return _make
