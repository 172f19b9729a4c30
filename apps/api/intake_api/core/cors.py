"""
Exact-origin CORS for the public intake endpoint and the admin API.

Starlette's CORSMiddleware answers "*" for wildcard configs and cannot keep
two policies (public form vs single admin UI origin) apart, so both are
handled here:

- Origins are matched by exact string membership only (no substrings, no
  patterns). A literal "*" entry in ALLOWED_ORIGINS reflects any origin.
- Every response carries ``Vary: Origin``.
- Preflight (OPTIONS) is answered before routing, so it never hits auth.
- Admin responses always carry ``Cache-Control: no-store``, errors included.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from intake_api.core.config import settings
from intake_api.core.constants import HMAC_HEADER, PREFLIGHT_MAX_AGE

PUBLIC_INTAKE_PATH = "/api/intake"
ADMIN_API_PREFIX = "/api/admin"

WILDCARD_ORIGIN = "*"


def is_origin_allowed(origin: str | None, allowed: frozenset[str]) -> bool:
    """Exact membership check; an absent origin is never allowed."""
    if not origin:
        return False
    return origin in allowed or WILDCARD_ORIGIN in allowed


def public_cors_headers(origin: str | None) -> dict[str, str]:
    """CORS headers for the public intake endpoint."""
    headers = {"Vary": "Origin"}
    if is_origin_allowed(origin, settings.ALLOWED_ORIGINS):
        headers["Access-Control-Allow-Origin"] = origin
    return headers


def admin_cors_headers(origin: str | None) -> dict[str, str]:
    """CORS headers for admin routes: only the configured admin UI origin, never wildcards."""
    headers = {"Vary": "Origin"}
    if origin and settings.ADMIN_UI_ORIGIN and origin == settings.ADMIN_UI_ORIGIN:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Credentials"] = "true"
    return headers


def public_preflight(origin: str | None) -> Response:
    return Response(
        status_code=204,
        headers={
            **public_cors_headers(origin),
            "Access-Control-Allow-Methods": "POST, OPTIONS",
            "Access-Control-Allow-Headers": f"Content-Type, {HMAC_HEADER}",
            "Access-Control-Max-Age": str(PREFLIGHT_MAX_AGE),
        },
    )


def admin_preflight(origin: str | None) -> Response:
    # Preflight carries no credentials, so no identity check here
    return Response(
        status_code=204,
        headers={
            **admin_cors_headers(origin),
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Max-Age": str(PREFLIGHT_MAX_AGE),
            "Cache-Control": "no-store",
        },
    )


def _is_admin_path(path: str) -> bool:
    return path == ADMIN_API_PREFIX or path.startswith(ADMIN_API_PREFIX + "/")


class IntakeCorsMiddleware(BaseHTTPMiddleware):
    """Attach exact-origin CORS (and admin no-store) headers to every response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        origin = request.headers.get("origin")
        is_admin = _is_admin_path(path)

        if request.method == "OPTIONS":
            if is_admin:
                return admin_preflight(origin)
            if path == PUBLIC_INTAKE_PATH:
                return public_preflight(origin)

        response = await call_next(request)

        if is_admin:
            response.headers.update(admin_cors_headers(origin))
            response.headers["Cache-Control"] = "no-store"
        else:
            response.headers.update(public_cors_headers(origin))

        return response
