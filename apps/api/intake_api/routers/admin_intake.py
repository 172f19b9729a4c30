"""Admin intake router - operator workflow over stored submissions.

Returns ciphertext and metadata only; plaintext never exists server-side.
Every route requires the platform identity header (see core.deps.get_operator);
CORS and Cache-Control: no-store are applied by IntakeCorsMiddleware.
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from intake_api.core.deps import OperatorIdentity, get_db, get_operator
from intake_api.db.enums import IntakeEventType, WorkflowAction
from intake_api.schemas.intake import (
    IntakeDetail,
    IntakeDetailResponse,
    IntakeEventRead,
    IntakeListResponse,
    IntakeMutationResponse,
    IntakeSummary,
)
from intake_api.services import audit_service, envelope_service, intake_service
from intake_api.utils.pagination import clamp_limit

router = APIRouter(
    prefix="/api/admin/intake",
    tags=["admin"],
    dependencies=[Depends(get_operator)],
)


async def _read_json_object(request: Request) -> dict[str, Any] | None:
    """Parse the request body as a JSON object; None if absent or not JSON."""
    raw = await request.body()
    if not raw:
        return None
    try:
        body = envelope_service.loads_strict(raw)
    except (ValueError, RecursionError):
        return None
    return body if isinstance(body, dict) else {}


@router.get("", response_model=IntakeListResponse)
def list_intake(
    limit: str | None = Query(None, description="Page size (default 50, max 200)"),
    cursor: str | None = Query(None, description="Opaque cursor from a previous page"),
    db: Session = Depends(get_db),
) -> IntakeListResponse:
    """List submissions newest first: metadata plus ciphertext length, never ciphertext."""
    page = intake_service.list_submissions(db, limit=clamp_limit(limit), cursor=cursor)
    items = [
        IntakeSummary(
            id=row.id,
            version=row.version,
            received_at=row.received_at,
            ciphertext_len=ciphertext_len,
            ip_hash=row.ip_hash,
            user_agent=row.user_agent,
            referrer=row.referrer,
            status=row.status,
            processed_at=row.processed_at,
            note=row.note,
            viewed_at=row.viewed_at,
        )
        for row, ciphertext_len in page.items
    ]
    return IntakeListResponse(items=items, next_cursor=page.next_cursor)


@router.get("/{intake_id}", response_model=IntakeDetailResponse)
def get_intake(
    intake_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(get_operator),
) -> IntakeDetailResponse:
    """
    Fetch one submission with its audit trail.

    The first successful fetch sets viewed_at and records a ``viewed`` event.
    """
    intake_id = intake_service.parse_path_id(intake_id)
    intake_service.get_submission(db, intake_id)

    if intake_service.mark_viewed(db, intake_id):
        background_tasks.add_task(
            audit_service.record_event, intake_id, IntakeEventType.VIEWED, operator.email
        )

    item = intake_service.get_submission(db, intake_id)
    events = audit_service.list_events(db, intake_id)
    return IntakeDetailResponse(
        item=IntakeDetail.model_validate(item),
        events=[IntakeEventRead.model_validate(event) for event in events],
    )


@router.post("/{intake_id}/mark-processed", response_model=IntakeMutationResponse)
async def mark_processed(
    intake_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(get_operator),
) -> IntakeMutationResponse:
    """Mark a submission processed. Body ``{note?}``; an empty body is fine."""
    intake_id = intake_service.parse_path_id(intake_id)

    note = None
    body = await _read_json_object(request)
    if body and "note" in body:
        if not isinstance(body["note"], str):
            raise HTTPException(400, "note must be a string")
        note = intake_service.clamp_note(body["note"])

    item, transition = intake_service.apply_action(
        db, intake_id, WorkflowAction.MARK_PROCESSED, note=note
    )
    background_tasks.add_task(
        audit_service.record_event,
        intake_id,
        transition.event,
        operator.email,
        {"note": note} if note is not None else None,
    )
    return IntakeMutationResponse(item=IntakeDetail.model_validate(item))


@router.post("/{intake_id}/note", response_model=IntakeMutationResponse)
async def update_note(
    intake_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(get_operator),
) -> IntakeMutationResponse:
    """Replace the note on a submission. Body ``{note}`` is required."""
    intake_id = intake_service.parse_path_id(intake_id)

    body = await _read_json_object(request)
    if body is None:
        raise HTTPException(400, "Invalid JSON body")
    if not isinstance(body.get("note"), str):
        raise HTTPException(400, "note is required and must be a string")
    note = intake_service.clamp_note(body["note"])

    item, transition = intake_service.apply_action(
        db, intake_id, WorkflowAction.UPDATE_NOTE, note=note
    )
    background_tasks.add_task(audit_service.record_event, intake_id, transition.event, operator.email)
    return IntakeMutationResponse(item=IntakeDetail.model_validate(item))


@router.post("/{intake_id}/unprocess", response_model=IntakeMutationResponse)
def unprocess(
    intake_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    operator: OperatorIdentity = Depends(get_operator),
) -> IntakeMutationResponse:
    """Revert a submission to ``new`` and clear processed_at."""
    intake_id = intake_service.parse_path_id(intake_id)

    item, transition = intake_service.apply_action(db, intake_id, WorkflowAction.UNPROCESS)
    background_tasks.add_task(audit_service.record_event, intake_id, transition.event, operator.email)
    return IntakeMutationResponse(item=IntakeDetail.model_validate(item))
