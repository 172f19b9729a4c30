"""Pydantic schemas for API request/response models."""

from intake_api.schemas.intake import (
    IntakeAccepted,
    IntakeDetail,
    IntakeListResponse,
    IntakeSummary,
)
