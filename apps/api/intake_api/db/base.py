"""Declarative base shared by the intake models."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Maps annotations to column types once for every model.

    Timestamps are always timezone-aware (stored as UTC). JSON documents use
    JSONB on PostgreSQL and plain JSON elsewhere, so tests run on SQLite.
    """
    type_annotation_map = {
        datetime: DateTime(timezone=True),
        dict[str, Any]: JSON().with_variant(JSONB(), "postgresql"),
    }
