"""
Tests for the HTTP surface.

Routes run against the fake-wired CardService from conftest; the
lifespan is not started.
"""

import pytest

from ticker.config import settings
from ticker.exceptions import TransientStoreError
from ticker.models.api import Tier

USER = {"X-User-ID": "user-1"}
WEBHOOK = {"X-API-Key": "test-webhook-key"}
TODAY = "2024-03-15"


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    monkeypatch.setattr(settings, "generator_retry_backoff_seconds", 0)


def profile_body() -> dict:
    return {
        "investmentAmount": "$1,000 - $5,000",
        "riskLevel": "Medium",
        "interests": ["technology"],
    }


class TestIdentity:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("post", "/v1/users/me"),
            ("get", "/v1/swipes/status"),
        ],
    )
    def test_missing_header_is_401(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401

    def test_blank_header_is_401(self, client):
        response = client.get("/v1/swipes/status", headers={"X-User-ID": "   "})
        assert response.status_code == 401


class TestProvision:
    def test_creates_free_quota(self, client, quota_store):
        response = client.post("/v1/users/me", headers=USER)

        assert response.status_code == 200
        assert response.json() == {
            "swipesRemaining": 10,
            "maxSwipes": 10,
            "tier": "free",
            "needsReset": False,
        }
        assert quota_store.rows["user-1"].tier == Tier.FREE

    def test_existing_record_untouched(self, client, quota_store):
        quota_store.seed("user-1", 4, TODAY, tier=Tier.PRO)

        response = client.post("/v1/users/me", headers=USER)

        assert response.json()["swipesRemaining"] == 4
        assert response.json()["tier"] == "pro"


class TestSwipes:
    def test_swipe_decrements(self, client, quota_store):
        quota_store.seed("user-1", 10, TODAY)

        response = client.post(
            "/v1/swipes", headers=USER, json={"contentId": "NVDA", "direction": "left"}
        )

        assert response.status_code == 200
        assert response.json() == {"swipesRemaining": 9, "maxSwipes": 10, "tier": "free"}

    def test_legacy_investment_id_accepted(self, client, quota_store, saved_cards):
        quota_store.seed("user-1", 10, TODAY)

        response = client.post(
            "/v1/swipes", headers=USER, json={"investmentId": "NVDA", "direction": "right"}
        )

        assert response.status_code == 200
        assert ("user-1", "NVDA") in saved_cards.saved

    def test_quota_exhausted_is_429(self, client, quota_store):
        quota_store.seed("user-1", 0, TODAY)

        response = client.post(
            "/v1/swipes", headers=USER, json={"contentId": "NVDA", "direction": "left"}
        )

        assert response.status_code == 429
        assert response.json()["detail"] == {
            "message": "Daily swipe limit reached",
            "tier": "free",
            "maxSwipes": 10,
        }

    def test_unknown_user_is_404(self, client):
        response = client.post(
            "/v1/swipes", headers=USER, json={"contentId": "NVDA", "direction": "left"}
        )
        assert response.status_code == 404

    def test_store_failure_is_503(self, client, quota_store, monkeypatch):
        async def broken(user_id, transition):
            raise TransientStoreError("serialization failure")

        monkeypatch.setattr(quota_store, "atomic_update", broken)

        response = client.post(
            "/v1/swipes", headers=USER, json={"contentId": "NVDA", "direction": "left"}
        )

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"

    def test_invalid_direction_is_422(self, client, quota_store):
        quota_store.seed("user-1", 10, TODAY)
        response = client.post(
            "/v1/swipes", headers=USER, json={"contentId": "NVDA", "direction": "up"}
        )
        assert response.status_code == 422
        assert quota_store.rows["user-1"].swipes_remaining == 10

    def test_undo_refunds(self, client, quota_store, saved_cards):
        quota_store.seed("user-1", 9, TODAY)
        saved_cards.saved.add(("user-1", "NVDA"))

        response = client.post(
            "/v1/swipes/undo", headers=USER, json={"contentId": "NVDA", "direction": "right"}
        )

        assert response.status_code == 200
        assert response.json()["swipesRemaining"] == 10
        assert saved_cards.saved == set()

    def test_undo_unknown_user_is_404(self, client):
        response = client.post(
            "/v1/swipes/undo", headers=USER, json={"contentId": "NVDA", "direction": "left"}
        )
        assert response.status_code == 404

    def test_status_reports_pending_reset(self, client, quota_store):
        quota_store.seed("user-1", 0, "2024-03-14")

        response = client.get("/v1/swipes/status", headers=USER)

        assert response.status_code == 200
        assert response.json() == {
            "swipesRemaining": 10,
            "maxSwipes": 10,
            "tier": "free",
            "needsReset": True,
        }
        assert quota_store.rows["user-1"].swipes_remaining == 0

    def test_status_unknown_user_is_404(self, client):
        assert client.get("/v1/swipes/status", headers=USER).status_code == 404


class TestTierWebhook:
    def test_requires_key(self, client, quota_store):
        quota_store.seed("user-1", 0, TODAY)
        response = client.post("/v1/webhooks/tier", json={"userId": "user-1", "tier": "pro"})
        assert response.status_code == 401

    def test_wrong_key(self, client, quota_store):
        quota_store.seed("user-1", 0, TODAY)
        response = client.post(
            "/v1/webhooks/tier",
            headers={"X-API-Key": "nope"},
            json={"userId": "user-1", "tier": "pro"},
        )
        assert response.status_code == 401
        assert quota_store.rows["user-1"].tier == Tier.FREE

    def test_unconfigured_is_503(self, client, monkeypatch):
        monkeypatch.setattr(settings, "webhook_api_key", "")
        response = client.post(
            "/v1/webhooks/tier", headers=WEBHOOK, json={"userId": "user-1", "tier": "pro"}
        )
        assert response.status_code == 503

    def test_upgrade_grants_full_allotment(self, client, quota_store):
        quota_store.seed("user-1", 0, TODAY)

        response = client.post(
            "/v1/webhooks/tier", headers=WEBHOOK, json={"userId": "user-1", "tier": "pro"}
        )

        assert response.status_code == 200
        assert response.json() == {"swipesRemaining": 50, "maxSwipes": 50, "tier": "pro"}

    def test_unknown_user_is_404(self, client):
        response = client.post(
            "/v1/webhooks/tier", headers=WEBHOOK, json={"userId": "ghost", "tier": "pro"}
        )
        assert response.status_code == 404


class TestGenerateCards:
    @pytest.fixture(autouse=True)
    def provisioned(self, quota_store):
        quota_store.seed("user-1", 10, TODAY)

    def test_generates_camel_case_cards(self, client, generator, make_stock_record):
        generator.outcomes = [[make_stock_record("NVDA"), make_stock_record("AMD")]]

        response = client.post(
            "/v1/cards/generate",
            headers=USER,
            json={"profile": profile_body(), "category": "stock", "count": 2},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["cached"] is False
        assert [item["ticker"] for item in body["items"]] == ["NVDA", "AMD"]
        first = body["items"][0]
        assert first["type"] == "stock"
        assert first["simpleExplainer"].startswith("This company")
        assert first["goodReasons"] == ["Market leader", "Strong demand"]

    def test_second_request_is_cached(self, client, generator, make_idea_record):
        generator.outcomes = [[make_idea_record()]]
        body = {"profile": profile_body(), "category": "idea", "count": 1}

        client.post("/v1/cards/generate", headers=USER, json=body)
        response = client.post("/v1/cards/generate", headers=USER, json=body)

        assert response.json()["cached"] is True
        assert response.json()["items"][0]["title"] == "Telemedicine for Seniors"
        assert len(generator.requests) == 1

    def test_generation_failure_is_502(self, client, generator):
        generator.outcomes = [[{"title": "junk"}]]

        response = client.post(
            "/v1/cards/generate",
            headers=USER,
            json={"profile": profile_body(), "category": "stock", "count": 1},
        )

        assert response.status_code == 502

    def test_unknown_user_is_404(self, client, generator, make_stock_record):
        generator.outcomes = [[make_stock_record("NVDA")]]

        response = client.post(
            "/v1/cards/generate",
            headers={"X-User-ID": "ghost"},
            json={"profile": profile_body(), "category": "stock", "count": 1},
        )

        assert response.status_code == 404
        assert generator.requests == []

    def test_count_above_limit_is_400(self, client, generator):
        response = client.post(
            "/v1/cards/generate",
            headers=USER,
            json={"profile": profile_body(), "category": "stock", "count": 500},
        )

        assert response.status_code == 400
        assert generator.requests == []

    def test_requires_identity(self, client):
        response = client.post(
            "/v1/cards/generate",
            json={"profile": profile_body(), "category": "stock"},
        )
        assert response.status_code == 401


class TestHealth:
    def test_healthy(self, client, db_session):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        db_session.execute.assert_awaited_once()

    def test_database_down(self, client, db_session):
        db_session.execute.side_effect = Exception("connection refused")

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["detail"]["database"] == "disconnected"

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "ticker_http_requests_total" in response.text
