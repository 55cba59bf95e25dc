"""Tests for the /v1/limits operations endpoints.

Each test builds an isolated app with its own limiters and a fake clock, so
no state leaks between tests through the module-level app.
"""

import pytest
from fastapi.testclient import TestClient

from rate_guard.adapters.rate_limit.named import LimitRule, build_limiter_set
from rate_guard.core.app_factory import create_app, limiters_from_settings
from rate_guard.core.config import RateLimitSettings, settings


@pytest.fixture
def limiters(clock):
    return build_limiter_set(
        {
            "ai": LimitRule(max_requests=2, window_ms=1000),
            "mutations": LimitRule(max_requests=3, window_ms=60_000),
        },
        clock=clock,
    )


@pytest.fixture
def client(limiters, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(settings.rate_limit, "enabled", True)
    return TestClient(create_app(limiters=limiters))


def test_requires_api_key(client: TestClient) -> None:
    response = client.get("/v1/limits")

    assert response.status_code == 403
    assert "Missing API key" in response.json()["detail"]


def test_rejects_unknown_api_key(client: TestClient) -> None:
    response = client.get("/v1/limits", headers={"X-API-Key": "nope"})

    assert response.status_code == 403


def test_list_limits(client: TestClient, valid_api_key_headers: dict[str, str]) -> None:
    response = client.get("/v1/limits", headers=valid_api_key_headers)

    assert response.status_code == 200
    assert response.json() == {
        "operations": {
            "ai": {"tracked_identifiers": 0, "max_requests": 2, "window_ms": 1000},
            "mutations": {"tracked_identifiers": 0, "max_requests": 3, "window_ms": 60_000},
        }
    }


def test_attempt_reports_refusal_as_success_response(
    client: TestClient, valid_api_key_headers: dict[str, str]
) -> None:
    url = "/v1/limits/ai/user-1/attempt"

    first = client.post(url, headers=valid_api_key_headers).json()
    second = client.post(url, headers=valid_api_key_headers).json()
    third = client.post(url, headers=valid_api_key_headers)

    assert first["allowed"] is True and first["remaining"] == 1
    assert second["allowed"] is True and second["remaining"] == 0
    assert third.status_code == 200
    assert third.json() == {
        "operation": "ai",
        "allowed": False,
        "limit": 2,
        "remaining": 0,
        "retry_after_ms": 1000,
    }


def test_quota_status(client: TestClient, valid_api_key_headers: dict[str, str], clock) -> None:
    for _ in range(2):
        client.post("/v1/limits/ai/user-1/attempt", headers=valid_api_key_headers)
    clock.advance(250)

    response = client.get("/v1/limits/ai/user-1", headers=valid_api_key_headers)

    assert response.status_code == 200
    assert response.json() == {
        "operation": "ai",
        "remaining": 0,
        "retry_after_ms": 750,
        "retry_after": "1 second",
    }


def test_quota_status_for_unseen_identifier(
    client: TestClient, valid_api_key_headers: dict[str, str]
) -> None:
    response = client.get("/v1/limits/ai/nobody", headers=valid_api_key_headers)

    assert response.json()["remaining"] == 2
    assert response.json()["retry_after"] == "now"


def test_reset_restores_quota(client: TestClient, valid_api_key_headers: dict[str, str]) -> None:
    for _ in range(2):
        client.post("/v1/limits/ai/user-1/attempt", headers=valid_api_key_headers)

    response = client.delete("/v1/limits/ai/user-1", headers=valid_api_key_headers)

    assert response.status_code == 204
    status = client.get("/v1/limits/ai/user-1", headers=valid_api_key_headers).json()
    assert status["remaining"] == 2


def test_cleanup_reports_removed_identifiers(
    client: TestClient, valid_api_key_headers: dict[str, str], clock
) -> None:
    client.post("/v1/limits/ai/user-1/attempt", headers=valid_api_key_headers)
    client.post("/v1/limits/ai/user-2/attempt", headers=valid_api_key_headers)
    clock.advance(5000)

    response = client.post("/v1/limits/cleanup", headers=valid_api_key_headers)

    assert response.status_code == 200
    # The guard on this route records the caller under "mutations" first.
    assert response.json() == {"removed": {"ai": 2, "mutations": 0}}


def test_mutating_routes_are_rate_limited(
    client: TestClient, valid_api_key_headers: dict[str, str]
) -> None:
    for _ in range(3):
        assert client.delete("/v1/limits/ai/u", headers=valid_api_key_headers).status_code == 204

    blocked = client.delete("/v1/limits/ai/u", headers=valid_api_key_headers)
    assert blocked.status_code == 429
    assert blocked.headers["X-RateLimit-Limit"] == "3"


def test_mutating_routes_work_without_mutations_class(
    clock, valid_api_key_headers: dict[str, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.rate_limit, "enabled", True)
    limiters = build_limiter_set({"ai": LimitRule(max_requests=1, window_ms=1000)}, clock=clock)
    client = TestClient(create_app(limiters=limiters))

    assert client.delete("/v1/limits/ai/u", headers=valid_api_key_headers).status_code == 204

    response = client.post("/v1/limits/cleanup", headers=valid_api_key_headers)
    assert response.status_code == 200
    assert response.json() == {"removed": {"ai": 0}}


def test_mutating_routes_charge_default_class_when_mutations_missing(
    clock, valid_api_key_headers: dict[str, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings.rate_limit, "enabled", True)
    limiters = build_limiter_set(
        {
            "ai": LimitRule(max_requests=1, window_ms=1000),
            "default": LimitRule(max_requests=1, window_ms=60_000),
        },
        clock=clock,
    )
    client = TestClient(create_app(limiters=limiters))

    assert client.delete("/v1/limits/ai/u", headers=valid_api_key_headers).status_code == 204
    blocked = client.delete("/v1/limits/ai/u", headers=valid_api_key_headers)
    assert blocked.status_code == 429
    assert blocked.headers["X-RateLimit-Limit"] == "1"


def test_unknown_operation_returns_404(client: TestClient, valid_api_key_headers: dict[str, str]) -> None:
    response = client.get("/v1/limits/nope/user-1", headers=valid_api_key_headers)

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "unknown_operation_class"
    assert "request_id" in error


def test_health_is_public_and_reports_sweeper(limiters) -> None:
    with TestClient(create_app(limiters=limiters)) as client:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["operations"] == ["ai", "mutations"]
        assert body["sweeper_running"] is (settings.rate_limit.cleanup_interval_seconds > 0)


def test_limiters_from_settings_adds_default_class() -> None:
    limiters = limiters_from_settings(
        RateLimitSettings(default_max_requests=7, default_window_ms=1234)
    )

    assert sorted(limiters) == ["ai", "default", "mutations", "search", "uploads"]
    assert limiters["default"].stats().max_requests == 7
    assert limiters["default"].stats().window_ms == 1234


def test_openapi_marks_health_public(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    assert "ApiKeyAuth" in schema["components"]["securitySchemes"]
    assert schema["paths"]["/health"]["get"]["security"] == []
