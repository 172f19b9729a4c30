"""Pydantic schemas for intake submissions and the admin workflow."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, field_serializer


def _utc(value: datetime | None) -> datetime | None:
    # SQLite returns naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class IntakeAccepted(BaseModel):
    """Response for an accepted submission (new or duplicate)."""
    ok: Literal[True] = True
    id: str
    status: Literal["created", "duplicate"]


class IntakeSummary(BaseModel):
    """Submission metadata for listings. Ciphertext is reported by length only."""
    id: str
    version: str
    received_at: datetime
    ciphertext_len: int
    ip_hash: str | None
    user_agent: str | None
    referrer: str | None
    status: str
    processed_at: datetime | None
    note: str | None
    viewed_at: datetime | None

    @field_serializer("received_at", "processed_at", "viewed_at")
    def _serialize_ts(self, value: datetime | None) -> datetime | None:
        return _utc(value)


class IntakeDetail(BaseModel):
    """A single submission including its ciphertext (never plaintext)."""
    id: str
    version: str
    received_at: datetime
    ciphertext: str
    ip_hash: str | None
    user_agent: str | None
    referrer: str | None
    status: str
    processed_at: datetime | None
    note: str | None
    viewed_at: datetime | None

    model_config = {"from_attributes": True}

    @field_serializer("received_at", "processed_at", "viewed_at")
    def _serialize_ts(self, value: datetime | None) -> datetime | None:
        return _utc(value)


class IntakeEventRead(BaseModel):
    """Audit trail entry."""
    event: str
    actor: str | None
    at: datetime
    meta: dict[str, Any] | None

    model_config = {"from_attributes": True}

    @field_serializer("at")
    def _serialize_ts(self, value: datetime) -> datetime:
        return _utc(value)


class IntakeListResponse(BaseModel):
    ok: Literal[True] = True
    items: list[IntakeSummary]
    next_cursor: str | None = None


class IntakeDetailResponse(BaseModel):
    ok: Literal[True] = True
    item: IntakeDetail
    events: list[IntakeEventRead] = []


class IntakeMutationResponse(BaseModel):
    ok: Literal[True] = True
    item: IntakeDetail
