"""SQLAlchemy ORM models for encrypted intake submissions and their audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from intake_api.db.base import Base
from intake_api.db.enums import DEFAULT_INTAKE_STATUS


class IntakeRequest(Base):
    """
    An encrypted intake submission.

    Stores ciphertext ONLY:
    - Never decrypted server-side (no key material here)
    - id is the client's content hash, stored lowercase; the primary key
      is the sole deduplication primitive
    - ciphertext and request metadata are write-once
    """

    __tablename__ = "intake_requests"
    __table_args__ = (
        Index("idx_intake_received_at", "received_at"),
        Index("idx_intake_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[str] = mapped_column(String(64), nullable=False)
    ciphertext: Mapped[str] = mapped_column(Text, nullable=False)
    received_at: Mapped[datetime] = mapped_column(nullable=False)

    # Privacy-preserving request metadata
    ip_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    referrer: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Admin workflow (metadata only)
    status: Mapped[str] = mapped_column(
        String(20), server_default=DEFAULT_INTAKE_STATUS.value, default=DEFAULT_INTAKE_STATUS.value, nullable=False
    )
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    viewed_at: Mapped[datetime | None] = mapped_column(nullable=True)


class IntakeEvent(Base):
    """
    Append-only audit trail of admin actions on a submission.

    Rows are never mutated or deleted; the autoincrement id gives insertion order.
    """

    __tablename__ = "intake_events"
    __table_args__ = (
        Index("idx_intake_events_intake_id", "intake_id"),
        Index("idx_intake_events_at", "at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    intake_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("intake_requests.id"), nullable=False
    )
    event: Mapped[str] = mapped_column(String(32), nullable=False)  # IntakeEventType
    actor: Mapped[str | None] = mapped_column(String(320), nullable=True)
    at: Mapped[datetime] = mapped_column(nullable=False)
    meta: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)
