"""Intake service - idempotent ingestion and the admin workflow store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator

from fastapi import HTTPException
from sqlalchemy import and_, func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from intake_api.core.constants import MAX_NOTE_BYTES
from intake_api.core.structured_logging import build_log_context
from intake_api.core.workflow_rules import Transition, get_transition
from intake_api.db.enums import WorkflowAction
from intake_api.db.models import IntakeRequest
from intake_api.services.envelope_service import IntakeEnvelope, normalize_intake_id
from intake_api.services.privacy_service import RequestMetadata, clamp_utf8
from intake_api.utils.pagination import encode_cursor, decode_cursor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    """Outcome of an ingestion write: created, or an idempotent duplicate."""
    id: str
    created: bool
    received_at: datetime | None = None


@dataclass
class IntakeListPage:
    items: list[tuple[IntakeRequest, int]]  # (row, ciphertext length)
    next_cursor: str | None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _storage_errors(db: Session, action: str, intake_id: str | None = None) -> Iterator[None]:
    """Map storage failures to a generic 500; internals stay in the server log."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Intake storage error during %s (%s)",
            action,
            type(exc).__name__,
            extra=build_log_context(intake_id=intake_id),
        )
        raise HTTPException(status_code=500, detail="Database error") from exc


# =============================================================================
# Ingestion
# =============================================================================

def store_submission(
    db: Session,
    envelope: IntakeEnvelope,
    metadata: RequestMetadata,
) -> IngestResult:
    """
    Insert a submission exactly once.

    The primary key on ``id`` is the only synchronization primitive: of two
    concurrent inserts of the same id, one commits and the other gets an
    IntegrityError, which is reported as a duplicate rather than an error.
    """
    received_at = _utcnow()
    row = IntakeRequest(
        id=envelope.id,
        version=envelope.version,
        ciphertext=envelope.encrypted.canonical,
        received_at=received_at,
        ip_hash=metadata.ip_hash,
        user_agent=metadata.user_agent,
        referrer=metadata.referrer,
    )
    with _storage_errors(db, "ingest", envelope.id):
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            # Only a conflicting row with this id makes it a duplicate
            if db.get(IntakeRequest, envelope.id) is not None:
                logger.info("Duplicate intake submission", extra=build_log_context(intake_id=envelope.id))
                return IngestResult(id=envelope.id, created=False)
            raise

    logger.info("Intake submission stored", extra=build_log_context(intake_id=envelope.id))
    return IngestResult(id=envelope.id, created=True, received_at=received_at)


# =============================================================================
# Admin workflow
# =============================================================================

def parse_path_id(raw: str) -> str:
    """Lowercase and validate an id taken from the URL path."""
    intake_id = normalize_intake_id(raw or "")
    if intake_id is None:
        raise HTTPException(status_code=400, detail="Invalid ID format")
    return intake_id


def clamp_note(note: str) -> str:
    return clamp_utf8(note, MAX_NOTE_BYTES)


def list_submissions(db: Session, *, limit: int, cursor: str | None = None) -> IntakeListPage:
    """
    Page through submissions newest first.

    Ordering is (received_at DESC, id DESC); the id tie-break makes the order
    total, so rows sharing a timestamp are never skipped or repeated across
    pages. One extra row is fetched to decide whether a next cursor exists.
    """
    query = db.query(IntakeRequest, func.length(IntakeRequest.ciphertext))

    if cursor:
        position = decode_cursor(cursor)
        query = query.filter(
            or_(
                IntakeRequest.received_at < position.received_at,
                and_(
                    IntakeRequest.received_at == position.received_at,
                    IntakeRequest.id < position.id,
                ),
            )
        )

    with _storage_errors(db, "list"):
        rows = (
            query.order_by(IntakeRequest.received_at.desc(), IntakeRequest.id.desc())
            .limit(limit + 1)
            .all()
        )

    has_more = len(rows) > limit
    page_rows = [(row, length or 0) for row, length in rows[:limit]]

    next_cursor = None
    if has_more and page_rows:
        last, _ = page_rows[-1]
        next_cursor = encode_cursor(received_at=last.received_at, row_id=last.id)

    return IntakeListPage(items=page_rows, next_cursor=next_cursor)


def get_submission(db: Session, intake_id: str) -> IntakeRequest:
    with _storage_errors(db, "fetch", intake_id):
        item = db.get(IntakeRequest, intake_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Not found")
    return item


def mark_viewed(db: Session, intake_id: str) -> bool:
    """
    Set viewed_at on first view only.

    The conditional update makes this at-most-once even under concurrent
    fetches. Returns True when this call performed the first view.
    """
    transition = get_transition(WorkflowAction.VIEW)
    with _storage_errors(db, "view", intake_id):
        result = db.execute(
            update(IntakeRequest)
            .where(
                IntakeRequest.id == intake_id,
                IntakeRequest.viewed_at.is_(None),
                IntakeRequest.status.in_([s.value for s in transition.allowed_from]),
            )
            .values(viewed_at=_utcnow())
            .execution_options(synchronize_session=False)
        )
        db.commit()
    return result.rowcount == 1


def _transition_values(transition: Transition, note: str | None) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if transition.action is WorkflowAction.MARK_PROCESSED:
        values["status"] = transition.target.value
        values["processed_at"] = _utcnow()
        if note is not None:
            values["note"] = note
    elif transition.action is WorkflowAction.UNPROCESS:
        values["status"] = transition.target.value
        values["processed_at"] = None
    elif transition.action is WorkflowAction.UPDATE_NOTE:
        values["note"] = note
    else:
        raise ValueError(f"{transition.action.value} is not a mutation")
    return values


def apply_action(
    db: Session,
    intake_id: str,
    action: WorkflowAction,
    *,
    note: str | None = None,
) -> tuple[IntakeRequest, Transition]:
    """
    Apply a workflow mutation with a single UPDATE and return the updated row.

    Raises:
        HTTPException 404: Unknown id
        HTTPException 409: Current status does not allow the action
    """
    transition = get_transition(action)
    values = _transition_values(transition, note)

    with _storage_errors(db, action.value, intake_id):
        result = db.execute(
            update(IntakeRequest)
            .where(
                IntakeRequest.id == intake_id,
                IntakeRequest.status.in_([s.value for s in transition.allowed_from]),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        db.commit()

    if result.rowcount == 0:
        # Distinguish a missing row from a disallowed transition
        get_submission(db, intake_id)
        raise HTTPException(status_code=409, detail="Transition not allowed")

    return get_submission(db, intake_id), transition
