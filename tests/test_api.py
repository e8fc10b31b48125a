"""
Tests for the HTTP layer
"""
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from discovery import api
from discovery.auth import issue_token
from discovery.errors import (
    ERROR_AUTH_INVALID_OR_EXPIRED_TOKEN, ERROR_AUTH_MISSING_TOKEN, ERROR_AUTH_SUBJECT_MISMATCH,
    ERROR_FILTER_INVALID_RANGE, ERROR_REQUEST_MALFORMED,
    ERROR_REQUESTER_PREFERENCE_MISSING, ERROR_REQUESTER_PROFILE_MISSING,
)

REQUESTER_HEADERS = {"Authorization": f"Bearer {issue_token('req_001')}"}
CANDIDATE_HEADERS = {"Authorization": f"Bearer {issue_token('cand_001')}"}


@pytest.fixture(scope="module")
def client():
    with TestClient(api.app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def clean_stores():
    api.profiles_db.clear()
    api.preferences_db.clear()
    api.interactions_db.clear()
    yield


@pytest.fixture
def live_candidate(make_candidate):
    """Candidate with timestamps relative to the wall clock"""
    current = datetime.now(timezone.utc)
    return make_candidate(
        date_of_birth=date(current.year - 28, 1, 1),
        created_at=current - timedelta(minutes=30),
        last_active=current - timedelta(minutes=1),
    )


@pytest.fixture
def seeded(client, requester, preference, live_candidate):
    client.post("/profiles", json=requester.model_dump(mode="json"), headers=REQUESTER_HEADERS)
    client.post("/profiles", json=live_candidate.model_dump(mode="json"), headers=CANDIDATE_HEADERS)
    client.post("/preferences", json=preference.model_dump(mode="json"), headers=REQUESTER_HEADERS)
    return client


class TestAPI:
    """API surface"""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["profiles_count"] == 0

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "version" in response.json()

    def test_missing_token(self, client):
        response = client.get("/matches")
        assert response.status_code == 401
        assert response.json()["error_code"] == ERROR_AUTH_MISSING_TOKEN
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, client):
        response = client.get("/matches", headers={"Authorization": "Bearer demo_token_123"})
        assert response.status_code == 401
        assert response.json()["error_code"] == ERROR_AUTH_INVALID_OR_EXPIRED_TOKEN

    def test_expired_token(self, client):
        token = issue_token("req_001", expires_in=timedelta(seconds=-5))
        response = client.get("/matches", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_add_profile_unauthorized(self, client, requester):
        response = client.post("/profiles", json=requester.model_dump(mode="json"))
        assert response.status_code == 401

    def test_cannot_write_other_members_records(self, client, requester, preference):
        response = client.post("/profiles", json=requester.model_dump(mode="json"), headers=CANDIDATE_HEADERS)
        assert response.status_code == 403
        assert response.json()["error_code"] == ERROR_AUTH_SUBJECT_MISMATCH
        assert "req_001" not in api.profiles_db

        client.post("/profiles", json=requester.model_dump(mode="json"), headers=REQUESTER_HEADERS)
        response = client.post("/preferences", json=preference.model_dump(mode="json"),
                               headers=CANDIDATE_HEADERS)
        assert response.status_code == 403
        assert "req_001" not in api.preferences_db

    def test_requester_without_profile(self, client):
        response = client.get("/matches", headers=REQUESTER_HEADERS)
        assert response.status_code == 404
        assert response.json()["error_code"] == ERROR_REQUESTER_PROFILE_MISSING

    def test_requester_without_preference(self, client, requester):
        client.post("/profiles", json=requester.model_dump(mode="json"), headers=REQUESTER_HEADERS)
        response = client.get("/matches", headers=REQUESTER_HEADERS)
        assert response.status_code == 404
        assert response.json()["error_code"] == ERROR_REQUESTER_PREFERENCE_MISSING

    def test_preferences_for_unknown_profile(self, client, preference):
        response = client.post("/preferences", json=preference.model_dump(mode="json"),
                               headers=REQUESTER_HEADERS)
        assert response.status_code == 404

    def test_search(self, seeded):
        response = seeded.get("/matches", headers=REQUESTER_HEADERS)
        assert response.status_code == 200
        data = response.json()
        assert data["category"] == "search"
        assert data["title"] == "Search Results"
        assert data["total_count"] == 1

        match = data["matches"][0]
        assert match["candidate_id"] == "cand_001"
        assert match["compatibility_percentage"] == f"{match['compatibility_score']}%"
        assert match["primary_photo"]["visible"] is True
        assert all(p["restriction_reason"] == "PREMIUM_ONLY" for p in match["photos"])

    def test_contradicting_range(self, seeded):
        response = seeded.get("/matches", params={"min_age": 40, "max_age": 30}, headers=REQUESTER_HEADERS)
        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == ERROR_FILTER_INVALID_RANGE
        assert data["field"] == "min_age"

    def test_negative_page(self, seeded):
        response = seeded.get("/matches", params={"page": -1}, headers=REQUESTER_HEADERS)
        assert response.status_code == 400
        assert response.json()["field"] == "page"

    def test_malformed_value(self, seeded):
        response = seeded.get("/matches", params={"min_age": "thirty"}, headers=REQUESTER_HEADERS)
        assert response.status_code == 400
        assert response.json()["error_code"] == ERROR_REQUEST_MALFORMED

    def test_size_clamped(self, seeded):
        response = seeded.get("/matches", params={"size": 500}, headers=REQUESTER_HEADERS)
        assert response.status_code == 200
        assert response.json()["size"] == 50

    def test_category_endpoints(self, seeded):
        response = seeded.get("/matches/new", headers=REQUESTER_HEADERS)
        assert response.status_code == 200
        assert response.json()["title"] == "New Matches"
        assert response.json()["total_count"] == 1

        response = seeded.get("/matches/my", headers=REQUESTER_HEADERS)
        assert response.status_code == 200
        assert response.json()["category"] == "mine"
        assert response.json()["total_count"] == 0

        response = seeded.get("/matches/popular", headers=REQUESTER_HEADERS)
        assert response.status_code == 400

    def test_stats_and_categories(self, seeded):
        stats = seeded.get("/matches/stats", headers=REQUESTER_HEADERS).json()
        assert stats["total_matches"] == 1
        assert stats["new_matches"] == 1
        assert stats["unviewed_matches"] == 1

        categories = seeded.get("/matches/categories", headers=REQUESTER_HEADERS).json()
        assert [c["slug"] for c in categories] == ["new", "today", "mine", "near", "more"]

    def test_like_from_candidate_is_visible(self, seeded):
        seeded.post("/interactions", json={"candidate_id": "req_001", "state": {"liked": True}},
                    headers=CANDIDATE_HEADERS)
        seeded.post("/interactions", json={"candidate_id": "cand_001", "state": {"liked": True}},
                    headers=REQUESTER_HEADERS)

        match = seeded.get("/matches", headers=REQUESTER_HEADERS).json()["matches"][0]
        assert match["is_liked"] is True
        assert match["actions"]["can_like"] is False

        stats = seeded.get("/matches/stats", headers=REQUESTER_HEADERS).json()
        assert stats["mutual_likes"] == 1

    def test_block_from_either_side(self, seeded):
        seeded.post("/interactions", json={"candidate_id": "req_001", "state": {"blocked": True}},
                    headers=CANDIDATE_HEADERS)
        response = seeded.get("/matches", headers=REQUESTER_HEADERS)
        assert response.json()["total_count"] == 0

        response = seeded.get("/matches", params={"exclude_blocked": False}, headers=REQUESTER_HEADERS)
        match = response.json()["matches"][0]
        assert match["actions"]["is_blocked"] is True
        assert match["primary_photo"]["url"] is None
