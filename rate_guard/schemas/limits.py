"""Pydantic schemas for limiter operations responses."""

from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, Field


class LimiterStatsResponse(BaseModel):
    """Snapshot of one operation class."""

    tracked_identifiers: int = Field(
        ..., description="Identifiers currently held in memory (may include idle ones not yet swept)."
    )
    max_requests: int = Field(..., description="Configured quota per window.")
    window_ms: int = Field(..., description="Configured window length in milliseconds.")


class LimitsOverviewResponse(BaseModel):
    """Stats for every configured operation class."""

    operations: Dict[str, LimiterStatsResponse] = Field(
        default_factory=dict,
        description="Operation class -> limiter stats.",
    )


class QuotaStatusResponse(BaseModel):
    """Current quota of one identifier for one operation class."""

    operation: str = Field(..., description="Operation class name.")
    remaining: int = Field(..., description="Requests still admissible in the current window.")
    retry_after_ms: int = Field(
        ..., description="Milliseconds until the next request would be admitted (0 = now)."
    )
    retry_after: str = Field(
        ..., description="Human readable form of retry_after_ms (e.g. '12 seconds')."
    )


class AttemptResponse(BaseModel):
    """Outcome of an admission attempt. Refusal is reported, not raised."""

    operation: str = Field(..., description="Operation class name.")
    allowed: bool = Field(..., description="Whether the attempt was admitted and recorded.")
    limit: int = Field(..., description="Configured quota per window.")
    remaining: int = Field(..., description="Requests still admissible after this attempt.")
    retry_after_ms: int = Field(
        ..., description="Milliseconds until the next request would be admitted (0 = now)."
    )


class CleanupResponse(BaseModel):
    """Result of an on-demand sweep."""

    removed: Dict[str, int] = Field(
        default_factory=dict,
        description="Idle identifiers dropped per operation class.",
    )
