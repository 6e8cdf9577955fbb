"""HTTP-level tests for the ranking API."""

import pytest
from fastapi.testclient import TestClient

from conftest import LISTING_ID, OTHER_USER_ID, USER_ID
from ranking.engine.models import DEFAULT_WEIGHTS, RewardCategory
from ranking.engine.weight_cache import WeightCache
from utils.bandit_store import InMemoryBanditStore
from utils.feedback_log import InMemoryFeedbackLog
from utils.listings import InMemoryListingRepository
from web.app import app, get_bandit_store, get_feedback_log, get_listings, get_weight_cache


class BrokenLog:
    def insert(self, event):
        raise RuntimeError("write concern timeout")


@pytest.fixture
def backend(listing_doc):
    store = InMemoryBanditStore(backoff_min=0, backoff_max=0)
    deps = {
        "listings": InMemoryListingRepository([listing_doc]),
        "feedback_log": InMemoryFeedbackLog(),
        "bandit_store": store,
        "weight_cache": WeightCache(store),
    }
    app.dependency_overrides[get_listings] = lambda: deps["listings"]
    app.dependency_overrides[get_feedback_log] = lambda: deps["feedback_log"]
    app.dependency_overrides[get_bandit_store] = lambda: deps["bandit_store"]
    app.dependency_overrides[get_weight_cache] = lambda: deps["weight_cache"]
    yield deps
    app.dependency_overrides.clear()


@pytest.fixture
def client(backend):
    return TestClient(app)


def _body(**overrides):
    body = {
        "apartmentId": LISTING_ID,
        "userId": USER_ID,
        "feedback": "good",
        "searchSessionId": "sess-42",
        "searchFilters": {"priceMax": 200000, "bedrooms": 2},
        "apartmentPosition": 1,
    }
    body.update(overrides)
    return body


class TestFeedbackEndpoint:
    def test_usage(self, client):
        resp = client.get("/ranking/feedback")
        assert resp.status_code == 200
        payload = resp.json()
        assert payload["message"] == "Ranking Feedback API"
        assert set(payload["feedback_types"]) == {"good", "bad", "neutral", "saved", "contacted"}

    def test_valid_feedback(self, client, backend):
        client.cookies.set("user_id", USER_ID)
        resp = client.post("/ranking/feedback", json=_body(), headers={"x-forwarded-for": "10.0.0.7, 10.0.0.1"})
        assert resp.status_code == 200
        payload = resp.json()
        assert payload["success"] is True
        assert payload["message"] == "Feedback recorded and ranking weights updated"
        assert set(payload["componentScores"]) == {c.value for c in RewardCategory}

        (record,) = backend["feedback_log"].records
        assert record["ip_address"] == "10.0.0.7"
        assert record["search_session_id"] == "sess-42"
        assert backend["bandit_store"].load().version == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"feedback": "meh"},
            {"apartmentId": "not-a-uuid"},
            {"userId": None},
        ],
    )
    def test_invalid_body_is_400_before_auth(self, client, backend, overrides):
        resp = client.post("/ranking/feedback", json=_body(**overrides))
        assert resp.status_code == 400
        payload = resp.json()
        assert payload["error"] == "Invalid request data"
        assert payload["details"]
        assert backend["feedback_log"].records == []

    def test_missing_cookie_is_401(self, client, backend):
        resp = client.post("/ranking/feedback", json=_body())
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}
        assert backend["bandit_store"].load().version == 0

    def test_other_user_is_403(self, client):
        client.cookies.set("user_id", OTHER_USER_ID)
        resp = client.post("/ranking/feedback", json=_body())
        assert resp.status_code == 403
        assert resp.json() == {"error": "Cannot provide feedback for another user"}

    def test_unknown_listing_is_404(self, client):
        client.cookies.set("user_id", USER_ID)
        resp = client.post("/ranking/feedback", json=_body(apartmentId="11111111-2222-3333-4444-555555555555"))
        assert resp.status_code == 404
        assert resp.json() == {"error": "Apartment not found"}

    def test_cookie_in_other_uuid_spelling_is_accepted(self, client):
        client.cookies.set("user_id", USER_ID.upper())
        resp = client.post("/ranking/feedback", json=_body())
        assert resp.status_code == 200

    def test_store_failure_is_500(self, client, backend):
        app.dependency_overrides[get_feedback_log] = lambda: BrokenLog()
        client.cookies.set("user_id", USER_ID)
        resp = client.post("/ranking/feedback", json=_body())
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to store feedback"}
        assert backend["bandit_store"].load().version == 0


class TestWeightsEndpoint:
    def test_defaults_before_any_feedback(self, client):
        resp = client.get("/ranking/weights")
        assert resp.status_code == 200
        assert resp.json()["weights"] == {c.value: w for c, w in DEFAULT_WEIGHTS.items()}

    def test_reflects_learned_weights(self, client, backend):
        client.get("/ranking/weights")
        client.cookies.set("user_id", USER_ID)
        client.post("/ranking/feedback", json=_body())
        learned = backend["bandit_store"].load().weights
        resp = client.get("/ranking/weights")
        assert resp.json()["weights"] == {c.value: w for c, w in learned.items()}


class TestScoreEndpoint:
    def test_scores_known_listings(self, client):
        resp = client.post(
            "/ranking/score",
            json={"listingIds": [LISTING_ID, "missing"], "query": {"price_max": 200000, "bedrooms": 2}},
        )
        assert resp.status_code == 200
        (result,) = resp.json()["results"]
        assert result["listingId"] == LISTING_ID
        assert 0 <= result["totalScore"] <= 100
        assert "basic" in result["categoryBreakdown"]

    def test_empty_listing_ids_rejected(self, client):
        resp = client.post("/ranking/score", json={"listingIds": []})
        assert resp.status_code == 400

    @pytest.mark.parametrize("field", ["price_min", "price_max", "bedrooms", "max_commute_minutes"])
    def test_negative_query_bounds_rejected(self, client, field):
        resp = client.post("/ranking/score", json={"listingIds": [LISTING_ID], "query": {field: -100}})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request data"
