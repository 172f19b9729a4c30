"""Metadata-only notification webhook for new submissions.

Carries the submission id, protocol version and receipt time, nothing else:
no ciphertext, no request metadata. Delivery is fire-and-forget.
"""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from intake_api.core.config import settings
from intake_api.core.structured_logging import INTAKE_ID_LOG_PREFIX, build_log_context

logger = logging.getLogger(__name__)


def build_notification_payload(*, intake_id: str, version: str, received_at: datetime) -> dict:
    """Discord/Slack-compatible message body built from the three allowed fields."""
    short_id = intake_id[:INTAKE_ID_LOG_PREFIX]
    received = received_at.isoformat()
    return {
        "text": f"New intake submission: {short_id}…",
        "content": f"New intake submission `{short_id}…` ({version}) at {received}",
        "embeds": [
            {
                "title": "Secure Intake Submission",
                "fields": [
                    {"name": "ID", "value": intake_id},
                    {"name": "Version", "value": version},
                    {"name": "Received", "value": received},
                ],
            }
        ],
    }


def _build_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.NOTIFY_TIMEOUT_SECONDS)


async def notify_new_submission(
    url: str,
    *,
    intake_id: str,
    version: str,
    received_at: datetime,
) -> None:
    """
    POST the notification. Never raises.

    Runs as a background task after the intake response has been sent; the
    client timeout bounds how long a hung endpoint can hold resources.
    """
    payload = build_notification_payload(intake_id=intake_id, version=version, received_at=received_at)
    try:
        async with _build_client() as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
        logger.info("Intake notification delivered", extra=build_log_context(intake_id=intake_id))
    except Exception as exc:
        # Best-effort: never surface webhook failures to the submitter
        logger.warning(
            "Intake notification failed (%s)",
            type(exc).__name__,
            extra=build_log_context(intake_id=intake_id),
        )
