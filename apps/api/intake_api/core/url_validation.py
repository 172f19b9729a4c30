"""URL validation helpers for outbound HTTP requests."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit


def validate_notify_webhook_url(url: str) -> str:
    """
    Validate the operator-configured notification webhook URL.

    Security goals:
    - Allow only https:// URLs.
    - Disallow credentials in the URL.

    Returns a normalized URL (lowercased scheme, no fragment) or raises ValueError.
    """
    candidate = (url or "").strip()
    if not candidate:
        raise ValueError("Webhook URL is required")

    parts = urlsplit(candidate)
    scheme = (parts.scheme or "").lower()
    if scheme != "https":
        raise ValueError("Webhook URL must start with https://")

    if not parts.netloc:
        raise ValueError("Webhook URL must include a host")

    if parts.username or parts.password:
        raise ValueError("Webhook URL must not include credentials")

    host = (parts.hostname or "").strip().lower().rstrip(".")
    if not host:
        raise ValueError("Webhook URL must include a host")

    if parts.fragment:
        raise ValueError("Webhook URL must not include a fragment")

    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, ""))
