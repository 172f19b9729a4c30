"""Tests for the operator workflow under /api/admin/intake."""

import base64
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from intake_api.core.config import settings
from intake_api.db.models import IntakeEvent, IntakeRequest

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _seed(db: Session, intake_id: str, received_at: datetime = BASE_TIME, ciphertext: str = "ct") -> IntakeRequest:
    row = IntakeRequest(
        id=intake_id,
        version="loggie.intake.v1",
        ciphertext=ciphertext,
        received_at=received_at,
    )
    db.add(row)
    db.commit()
    return row


def _events(db: Session, intake_id: str) -> list[IntakeEvent]:
    return (
        db.query(IntakeEvent)
        .filter(IntakeEvent.intake_id == intake_id)
        .order_by(IntakeEvent.id.asc())
        .all()
    )


# =============================================================================
# Operator identity
# =============================================================================

@pytest.mark.asyncio
async def test_missing_identity_is_unauthorized(client: AsyncClient):
    response = await client.get("/api/admin/intake")

    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "unauthorized"}


@pytest.mark.asyncio
async def test_blank_identity_is_unauthorized(client: AsyncClient):
    response = await client.get(
        "/api/admin/intake", headers={settings.ADMIN_IDENTITY_HEADER: "   "}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_identity_outside_allowlist_is_forbidden(admin_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", frozenset({"someone-else@example.com"}))

    response = await admin_client.get("/api/admin/intake")

    assert response.status_code == 403
    assert response.json() == {"ok": False, "error": "unauthorized"}


@pytest.mark.asyncio
async def test_allowlist_match_ignores_case(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", frozenset({"ops@example.com"}))

    response = await client.get(
        "/api/admin/intake", headers={settings.ADMIN_IDENTITY_HEADER: "Ops@Example.COM"}
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_every_admin_route_requires_identity(client: AsyncClient, db: Session, make_intake_id):
    intake_id = make_intake_id("guarded")
    _seed(db, intake_id)

    for method, path in [
        ("GET", f"/api/admin/intake/{intake_id}"),
        ("POST", f"/api/admin/intake/{intake_id}/mark-processed"),
        ("POST", f"/api/admin/intake/{intake_id}/note"),
        ("POST", f"/api/admin/intake/{intake_id}/unprocess"),
    ]:
        response = await client.request(method, path)
        assert response.status_code == 401, path

    assert _events(db, intake_id) == []


# =============================================================================
# Listing
# =============================================================================

@pytest.mark.asyncio
async def test_list_empty(admin_client: AsyncClient):
    response = await admin_client.get("/api/admin/intake")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "items": [], "next_cursor": None}


@pytest.mark.asyncio
async def test_list_reports_ciphertext_length_not_ciphertext(
    admin_client: AsyncClient, db: Session, make_intake_id
):
    older = make_intake_id("older")
    newer = make_intake_id("newer")
    _seed(db, older, BASE_TIME, ciphertext="a" * 10)
    _seed(db, newer, BASE_TIME + timedelta(minutes=5), ciphertext="b" * 25)

    response = await admin_client.get("/api/admin/intake")

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["id"] for item in items] == [newer, older]
    assert [item["ciphertext_len"] for item in items] == [25, 10]
    assert all("ciphertext" not in item for item in items)
    assert items[0]["status"] == "new"
    assert items[0]["viewed_at"] is None


@pytest.mark.asyncio
async def test_cursor_pagination_with_timestamp_ties(
    admin_client: AsyncClient, db: Session, make_intake_id
):
    rows = [
        (make_intake_id(f"tie-{i}"), BASE_TIME) for i in range(3)
    ] + [
        (make_intake_id("later"), BASE_TIME + timedelta(seconds=1)),
        (make_intake_id("earlier"), BASE_TIME - timedelta(seconds=1)),
    ]
    for intake_id, received_at in rows:
        _seed(db, intake_id, received_at)
    expected = [intake_id for intake_id, _ in sorted(rows, key=lambda r: (r[1], r[0]), reverse=True)]

    seen: list[str] = []
    cursor = None
    for _ in range(5):
        params = {"limit": "2"}
        if cursor:
            params["cursor"] = cursor
        response = await admin_client.get("/api/admin/intake", params=params)
        assert response.status_code == 200
        payload = response.json()
        seen.extend(item["id"] for item in payload["items"])
        cursor = payload["next_cursor"]
        if cursor is None:
            break

    assert seen == expected


@pytest.mark.asyncio
async def test_no_cursor_when_page_is_exactly_full(admin_client: AsyncClient, db: Session, make_intake_id):
    _seed(db, make_intake_id("one"), BASE_TIME)
    _seed(db, make_intake_id("two"), BASE_TIME + timedelta(seconds=1))

    response = await admin_client.get("/api/admin/intake", params={"limit": "2"})

    payload = response.json()
    assert len(payload["items"]) == 2
    assert payload["next_cursor"] is None


@pytest.mark.asyncio
async def test_non_numeric_limit_uses_default(admin_client: AsyncClient, db: Session, make_intake_id):
    _seed(db, make_intake_id("only"))

    response = await admin_client.get("/api/admin/intake", params={"limit": "lots"})

    assert response.status_code == 200
    assert len(response.json()["items"]) == 1


@pytest.mark.parametrize(
    "cursor",
    [
        base64.urlsafe_b64encode(b"not json").decode(),
        base64.urlsafe_b64encode(b'{"id": "x"}').decode(),
        base64.urlsafe_b64encode(b'{"received_at": "yesterday", "id": "x"}').decode(),
        "@@@",
    ],
)
@pytest.mark.asyncio
async def test_invalid_cursor_rejected(admin_client: AsyncClient, cursor):
    response = await admin_client.get("/api/admin/intake", params={"cursor": cursor})

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Invalid cursor format"}


# =============================================================================
# Fetch and first view
# =============================================================================

@pytest.mark.asyncio
async def test_fetch_invalid_and_unknown_ids(admin_client: AsyncClient, make_intake_id):
    invalid = await admin_client.get("/api/admin/intake/not-a-hash")
    assert invalid.status_code == 400
    assert invalid.json() == {"ok": False, "error": "Invalid ID format"}

    unknown = await admin_client.get(f"/api/admin/intake/{make_intake_id('missing')}")
    assert unknown.status_code == 404
    assert unknown.json() == {"ok": False, "error": "Not found"}


@pytest.mark.asyncio
async def test_fetch_returns_ciphertext_and_marks_viewed_once(
    admin_client: AsyncClient, db: Session, make_intake_id, operator_email
):
    intake_id = make_intake_id("view")
    _seed(db, intake_id, ciphertext="opaque-ciphertext")

    first = await admin_client.get(f"/api/admin/intake/{intake_id.upper()}")
    assert first.status_code == 200
    item = first.json()["item"]
    assert item["id"] == intake_id
    assert item["ciphertext"] == "opaque-ciphertext"
    assert item["viewed_at"] is not None

    second = await admin_client.get(f"/api/admin/intake/{intake_id}")
    assert second.status_code == 200
    assert second.json()["item"]["viewed_at"] == item["viewed_at"]

    events = second.json()["events"]
    assert [event["event"] for event in events] == ["viewed"]
    assert events[0]["actor"] == operator_email

    assert [event.event for event in _events(db, intake_id)] == ["viewed"]


# =============================================================================
# Mutations
# =============================================================================

@pytest.mark.asyncio
async def test_mark_processed_then_unprocess(
    admin_client: AsyncClient, db: Session, make_intake_id, operator_email
):
    intake_id = make_intake_id("workflow")
    _seed(db, intake_id)

    processed = await admin_client.post(
        f"/api/admin/intake/{intake_id}/mark-processed", json={"note": "called back"}
    )
    assert processed.status_code == 200
    item = processed.json()["item"]
    assert processed.json()["ok"] is True
    assert item["status"] == "processed"
    assert item["processed_at"] is not None
    assert item["note"] == "called back"

    reverted = await admin_client.post(f"/api/admin/intake/{intake_id}/unprocess")
    assert reverted.status_code == 200
    item = reverted.json()["item"]
    assert item["status"] == "new"
    assert item["processed_at"] is None
    assert item["note"] == "called back"

    events = _events(db, intake_id)
    assert [event.event for event in events] == ["mark-processed", "unprocessed"]
    assert events[0].meta == {"note": "called back"}
    assert events[1].meta is None
    assert {event.actor for event in events} == {operator_email}


@pytest.mark.asyncio
async def test_mark_processed_is_repeatable(admin_client: AsyncClient, db: Session, make_intake_id):
    intake_id = make_intake_id("repeat")
    _seed(db, intake_id)

    first = await admin_client.post(f"/api/admin/intake/{intake_id}/mark-processed")
    second = await admin_client.post(f"/api/admin/intake/{intake_id}/mark-processed")

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["item"]["status"] == "processed"
    assert [event.event for event in _events(db, intake_id)] == ["mark-processed", "mark-processed"]


@pytest.mark.asyncio
async def test_mark_processed_without_note_keeps_existing_note(
    admin_client: AsyncClient, db: Session, make_intake_id
):
    intake_id = make_intake_id("keep-note")
    _seed(db, intake_id)
    await admin_client.post(f"/api/admin/intake/{intake_id}/note", json={"note": "first contact"})

    response = await admin_client.post(f"/api/admin/intake/{intake_id}/mark-processed")

    assert response.status_code == 200
    assert response.json()["item"]["note"] == "first contact"
    assert _events(db, intake_id)[-1].meta is None


@pytest.mark.asyncio
async def test_mark_processed_rejects_non_string_note(admin_client: AsyncClient, db: Session, make_intake_id):
    intake_id = make_intake_id("bad-note")
    _seed(db, intake_id)

    response = await admin_client.post(
        f"/api/admin/intake/{intake_id}/mark-processed", json={"note": 5}
    )

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "note must be a string"}
    assert db.get(IntakeRequest, intake_id).status == "new"
    assert _events(db, intake_id) == []


@pytest.mark.asyncio
async def test_update_note(admin_client: AsyncClient, db: Session, make_intake_id):
    intake_id = make_intake_id("note")
    _seed(db, intake_id)

    response = await admin_client.post(f"/api/admin/intake/{intake_id}/note", json={"note": "needs follow-up"})

    assert response.status_code == 200
    assert response.json()["item"]["note"] == "needs follow-up"
    assert response.json()["item"]["status"] == "new"
    assert [event.event for event in _events(db, intake_id)] == ["note-updated"]


@pytest.mark.asyncio
async def test_update_note_is_clamped(admin_client: AsyncClient, db: Session, make_intake_id):
    intake_id = make_intake_id("long-note")
    _seed(db, intake_id)

    response = await admin_client.post(f"/api/admin/intake/{intake_id}/note", json={"note": "é" * 3000})

    note = response.json()["item"]["note"]
    assert len(note.encode("utf-8")) == 4096
    assert note == "é" * 2048


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({}, "Invalid JSON body"),
        ({"content": b"{oops", "headers": {"Content-Type": "application/json"}}, "Invalid JSON body"),
        ({"json": {"text": "wrong key"}}, "note is required and must be a string"),
        ({"json": {"note": None}}, "note is required and must be a string"),
        ({"json": ["note"]}, "note is required and must be a string"),
    ],
)
@pytest.mark.asyncio
async def test_update_note_validation(admin_client: AsyncClient, db: Session, make_intake_id, kwargs, error):
    intake_id = make_intake_id("note-validation")
    _seed(db, intake_id)

    response = await admin_client.post(f"/api/admin/intake/{intake_id}/note", **kwargs)

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": error}


@pytest.mark.asyncio
async def test_mutations_on_unknown_id(admin_client: AsyncClient, make_intake_id):
    missing = make_intake_id("nobody")

    for path, kwargs in [
        (f"/api/admin/intake/{missing}/mark-processed", {}),
        (f"/api/admin/intake/{missing}/unprocess", {}),
        (f"/api/admin/intake/{missing}/note", {"json": {"note": "x"}}),
    ]:
        response = await admin_client.post(path, **kwargs)
        assert response.status_code == 404, path

    invalid = await admin_client.post("/api/admin/intake/xyz/unprocess")
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Invalid ID format"


@pytest.mark.asyncio
async def test_detail_lists_events_in_order(admin_client: AsyncClient, db: Session, make_intake_id):
    intake_id = make_intake_id("history")
    _seed(db, intake_id)

    await admin_client.get(f"/api/admin/intake/{intake_id}")
    await admin_client.post(f"/api/admin/intake/{intake_id}/note", json={"note": "n"})
    await admin_client.post(f"/api/admin/intake/{intake_id}/mark-processed")
    await admin_client.post(f"/api/admin/intake/{intake_id}/unprocess")

    response = await admin_client.get(f"/api/admin/intake/{intake_id}")

    assert [event["event"] for event in response.json()["events"]] == [
        "viewed",
        "note-updated",
        "mark-processed",
        "unprocessed",
    ]


@pytest.mark.asyncio
async def test_note_body_nested_too_deeply_is_invalid(admin_client: AsyncClient, db: Session, make_intake_id):
    intake_id = make_intake_id("deep-note")
    _seed(db, intake_id)

    response = await admin_client.post(
        f"/api/admin/intake/{intake_id}/note",
        content=b"[" * 5000 + b"]" * 5000,
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Invalid JSON body"}


@pytest.mark.asyncio
async def test_mark_processed_with_cleared_note_is_audited(
    admin_client: AsyncClient, db: Session, make_intake_id
):
    intake_id = make_intake_id("clear-note")
    _seed(db, intake_id)
    await admin_client.post(f"/api/admin/intake/{intake_id}/note", json={"note": "temporary"})

    response = await admin_client.post(
        f"/api/admin/intake/{intake_id}/mark-processed", json={"note": ""}
    )

    assert response.status_code == 200
    assert response.json()["item"]["note"] == ""
    assert _events(db, intake_id)[-1].meta == {"note": ""}
