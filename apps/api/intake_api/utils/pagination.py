"""Cursor pagination utilities for list endpoints."""

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import HTTPException

from intake_api.core.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT


@dataclass(frozen=True)
class PageCursor:
    """Last-seen (received_at, id) pair of a page ordered by both, descending."""
    received_at: datetime
    id: str


def clamp_limit(raw: str | None) -> int:
    """
    Page size from the query string.

    Missing or non-numeric values fall back to the default; anything else is
    clamped to [1, MAX_PAGE_LIMIT].
    """
    try:
        limit = int(raw) if raw is not None else DEFAULT_PAGE_LIMIT
    except ValueError:
        limit = DEFAULT_PAGE_LIMIT
    if limit == 0:
        limit = DEFAULT_PAGE_LIMIT
    return min(max(limit, 1), MAX_PAGE_LIMIT)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; all stored timestamps are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def encode_cursor(*, received_at: datetime, row_id: str) -> str:
    payload = {"received_at": _as_utc(received_at).isoformat(), "id": row_id}
    return base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("utf-8")


def decode_cursor(cursor: str) -> PageCursor:
    try:
        decoded = base64.urlsafe_b64decode(cursor.encode("utf-8")).decode("utf-8")
        payload = json.loads(decoded)
        received_at = datetime.fromisoformat(payload["received_at"])
        row_id = payload["id"]
        if not isinstance(row_id, str) or not row_id:
            raise ValueError("cursor id must be a non-empty string")
    except (binascii.Error, ValueError, KeyError, TypeError, RecursionError) as exc:
        raise HTTPException(status_code=400, detail="Invalid cursor format") from exc
    return PageCursor(received_at=_as_utc(received_at), id=row_id)
