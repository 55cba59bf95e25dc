"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any rate_guard import so settings are
built from them rather than from a local .env file.
"""

import os

os.environ["TESTING"] = "true"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402


class FakeClock:
    """Deterministic millisecond clock for limiter tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, ms: float) -> None:
        self.current += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=1_000_000.0)


@pytest.fixture
def valid_api_key_headers() -> dict[str, str]:
    return {"X-API-Key": "test-api-key-123"}
