"""Structured logging helpers (ciphertext- and PII-safe)."""

from typing import Any

# Submission ids are content hashes; logs only ever carry a short prefix.
INTAKE_ID_LOG_PREFIX = 12


def build_log_context(
    *,
    intake_id: str | None = None,
    event: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict that never carries ciphertext or raw identities."""
    context: dict[str, Any] = {}
    if intake_id:
        context["intake_id"] = intake_id[:INTAKE_ID_LOG_PREFIX]
    if event:
        context["event"] = event
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
