"""Privacy normalization of request metadata stored alongside a submission."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from fastapi import Request

from intake_api.core.config import settings
from intake_api.core.constants import MAX_REFERRER_BYTES, MAX_USER_AGENT_BYTES
from intake_api.core.security import hash_client_ip

_QUERY_OR_FRAGMENT = re.compile(r"[?#]")
_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class RequestMetadata:
    ip_hash: str | None
    user_agent: str | None
    referrer: str | None


def clamp_utf8(value: str, max_bytes: int) -> str:
    """Truncate to at most max_bytes of UTF-8 without splitting a character."""
    encoded = value.encode("utf-8")
    if len(encoded) <= max_bytes:
        return value
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def strip_referrer_query(referrer: str) -> str:
    """
    Drop query string and fragment (tokens, session ids, PII) from a referrer.

    Well-formed absolute URLs are reduced to ``scheme://host[:port]/path``
    (credentials dropped); anything else is cut at the first ``?`` or ``#``.
    """
    try:
        parts = urlsplit(referrer)
        port = parts.port
    except ValueError:
        parts = None

    if parts is not None and parts.scheme and parts.hostname:
        scheme = parts.scheme.lower()
        host = parts.hostname
        if ":" in host:
            host = f"[{host}]"
        if port is not None and port != _DEFAULT_PORTS.get(scheme):
            host = f"{host}:{port}"
        return f"{scheme}://{host}{parts.path or '/'}"

    match = _QUERY_OR_FRAGMENT.search(referrer)
    return referrer[: match.start()] if match else referrer


def normalize_user_agent(user_agent: str | None) -> str | None:
    if not user_agent:
        return None
    return clamp_utf8(user_agent, MAX_USER_AGENT_BYTES) or None


def normalize_referrer(referrer: str | None) -> str | None:
    if not referrer:
        return None
    return clamp_utf8(strip_referrer_query(referrer), MAX_REFERRER_BYTES) or None


def get_client_ip(request: Request | None) -> str | None:
    """Extract client IP from request, honouring edge headers only when trusted."""
    if not request:
        return None

    if settings.TRUST_PROXY_HEADERS:
        if settings.CLIENT_IP_HEADER:
            edge_ip = (request.headers.get(settings.CLIENT_IP_HEADER) or "").strip()
            if edge_ip:
                return edge_ip
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip() or None

    # Fall back to direct connection
    if request.client:
        return request.client.host

    return None


def collect_request_metadata(request: Request) -> RequestMetadata:
    """Build the privacy-safe metadata stored with a submission."""
    return RequestMetadata(
        ip_hash=hash_client_ip(get_client_ip(request), settings.INTAKE_IP_SALT),
        user_agent=normalize_user_agent(request.headers.get("user-agent")),
        referrer=normalize_referrer(request.headers.get("referer")),
    )
