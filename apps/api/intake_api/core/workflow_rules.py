"""Workflow transition table for intake submissions."""

from dataclasses import dataclass

from intake_api.db.enums import IntakeEventType, IntakeStatus, WorkflowAction

ANY_STATUS: frozenset[IntakeStatus] = frozenset(IntakeStatus)


@dataclass(frozen=True)
class Transition:
    """One admin action: where it may start, where it lands, what it audits."""
    action: WorkflowAction
    allowed_from: frozenset[IntakeStatus]
    target: IntakeStatus | None  # None leaves status unchanged
    event: IntakeEventType


WORKFLOW_TRANSITIONS: dict[WorkflowAction, Transition] = {
    WorkflowAction.VIEW: Transition(
        action=WorkflowAction.VIEW,
        allowed_from=ANY_STATUS,
        target=None,
        event=IntakeEventType.VIEWED,
    ),
    WorkflowAction.MARK_PROCESSED: Transition(
        action=WorkflowAction.MARK_PROCESSED,
        allowed_from=ANY_STATUS,
        target=IntakeStatus.PROCESSED,
        event=IntakeEventType.MARK_PROCESSED,
    ),
    WorkflowAction.UNPROCESS: Transition(
        action=WorkflowAction.UNPROCESS,
        allowed_from=ANY_STATUS,
        target=IntakeStatus.NEW,
        event=IntakeEventType.UNPROCESSED,
    ),
    WorkflowAction.UPDATE_NOTE: Transition(
        action=WorkflowAction.UPDATE_NOTE,
        allowed_from=ANY_STATUS,
        target=None,
        event=IntakeEventType.NOTE_UPDATED,
    ),
}


def get_transition(action: WorkflowAction) -> Transition:
    """Look up the transition for an action (every action has exactly one)."""
    return WORKFLOW_TRANSITIONS[action]
