"""Audit service - append-only admin event trail for intake submissions.

Audit logging is best-effort: events are written after the response in their
own session, and a failed write is logged and dropped. It never fails or rolls
back the admin action that triggered it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from intake_api.core.structured_logging import build_log_context
from intake_api.db.enums import IntakeEventType
from intake_api.db.models import IntakeEvent
from intake_api.db.session import SessionLocal

logger = logging.getLogger(__name__)


def log_event(
    db: Session,
    intake_id: str,
    event: IntakeEventType,
    actor: str | None,
    meta: dict[str, Any] | None = None,
    at: datetime | None = None,
) -> IntakeEvent:
    """
    Append one audit event. Caller commits.

    Args:
        db: Database session
        intake_id: Submission the action applied to
        event: Event tag (from IntakeEventType)
        actor: Operator identity that performed the action
        meta: Optional structured payload (e.g. {"note": ...})
        at: Event time (defaults to now, UTC)
    """
    entry = IntakeEvent(
        intake_id=intake_id,
        event=event.value,
        actor=actor,
        at=at or datetime.now(timezone.utc),
        meta=meta or None,
    )
    db.add(entry)
    return entry


def record_event(
    intake_id: str,
    event: IntakeEventType,
    actor: str | None,
    meta: dict[str, Any] | None = None,
) -> None:
    """
    Best-effort audit write in a dedicated session.

    Scheduled as a background task so the admin response never waits on,
    or fails because of, the audit trail.
    """
    db = SessionLocal()
    try:
        log_event(db, intake_id, event, actor, meta)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Audit event dropped (%s)",
            type(exc).__name__,
            extra=build_log_context(intake_id=intake_id, event=event.value),
        )
    finally:
        db.close()


def list_events(db: Session, intake_id: str) -> list[IntakeEvent]:
    """Events for a submission in the order they were written."""
    return (
        db.query(IntakeEvent)
        .filter(IntakeEvent.intake_id == intake_id)
        .order_by(IntakeEvent.id.asc())
        .all()
    )
