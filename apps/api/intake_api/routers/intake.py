"""
POST /api/intake - Encrypted intake submission endpoint.

Core invariant: the server stores ciphertext ONLY.
- Never decrypts
- Never recomputes the id
- Never logs payloads (it could not read them anyway)
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from intake_api.core.config import settings
from intake_api.core.constants import HMAC_HEADER
from intake_api.core.deps import get_db
from intake_api.core.security import verify_envelope_signature
from intake_api.core.structured_logging import build_log_context
from intake_api.schemas.intake import IntakeAccepted
from intake_api.services import envelope_service, intake_service, notification_service, privacy_service
from intake_api.services.envelope_service import PayloadKind

router = APIRouter(tags=["intake"])
logger = logging.getLogger(__name__)


@router.post("/api/intake", status_code=201, response_model=IntakeAccepted)
async def submit_intake(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    Accept an encrypted envelope ``{v, id, encrypted}``.

    Pipeline (cheap checks first, so oversized or malformed input never
    reaches HMAC verification or the database):
    1. Content-Type must be JSON (415)
    2. True body length within MAX_BODY_BYTES (413)
    3. Envelope shape, version and id format (400)
    4. Canonical payload length within MAX_BODY_BYTES (413)
    5. HMAC over ``lowercase(id) + "." + encrypted`` when a secret is set (400/401)
    6. Idempotent insert: 201 created, 200 duplicate, 500 storage error
    """
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type:
        raise HTTPException(415, "Content-Type must be application/json")

    max_bytes = settings.MAX_BODY_BYTES
    raw = await envelope_service.read_body_limited(request, max_bytes)
    body = envelope_service.parse_json_body(raw)
    envelope = envelope_service.validate_envelope(body, settings.ALLOWED_VERSIONS)

    if envelope.encrypted.canonical_bytes > max_bytes:
        raise HTTPException(413, "Encrypted payload too large")

    if settings.hmac_enabled:
        # Only a string has a single canonical byte form to sign
        if envelope.encrypted.kind is not PayloadKind.TEXT:
            raise HTTPException(400, "When HMAC is enabled, 'encrypted' must be a string")
        provided = request.headers.get(HMAC_HEADER)
        if not provided:
            raise HTTPException(401, f"Missing {HMAC_HEADER} header")
        if not verify_envelope_signature(
            settings.INTAKE_HMAC_SECRET, envelope.id, envelope.encrypted.canonical, provided
        ):
            logger.warning(
                "Intake HMAC mismatch",
                extra=build_log_context(intake_id=envelope.id, route="/api/intake", method="POST"),
            )
            raise HTTPException(401, "Invalid HMAC")

    metadata = privacy_service.collect_request_metadata(request)
    result = intake_service.store_submission(db, envelope, metadata)

    if not result.created:
        return JSONResponse(
            status_code=200,
            content=IntakeAccepted(id=result.id, status="duplicate").model_dump(),
        )

    if settings.NOTIFY_WEBHOOK_URL:
        background_tasks.add_task(
            notification_service.notify_new_submission,
            settings.NOTIFY_WEBHOOK_URL,
            intake_id=envelope.id,
            version=envelope.version,
            received_at=result.received_at,
        )

    return IntakeAccepted(id=result.id, status="created")
