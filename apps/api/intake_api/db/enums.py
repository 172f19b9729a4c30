"""Enum definitions for application constants."""

from enum import Enum


class IntakeStatus(str, Enum):
    """
    Workflow status of a submission.

    Transitions are free-form in both directions (new → processed → new);
    see intake_api.core.workflow_rules.
    """
    NEW = "new"
    PROCESSED = "processed"


DEFAULT_INTAKE_STATUS = IntakeStatus.NEW


class IntakeEventType(str, Enum):
    """Audit trail event tags for admin actions."""
    VIEWED = "viewed"
    MARK_PROCESSED = "mark-processed"
    UNPROCESSED = "unprocessed"
    NOTE_UPDATED = "note-updated"


class WorkflowAction(str, Enum):
    """Admin actions that change (or touch) a submission's workflow state."""
    VIEW = "view"
    MARK_PROCESSED = "mark-processed"
    UNPROCESS = "unprocess"
    UPDATE_NOTE = "update-note"
