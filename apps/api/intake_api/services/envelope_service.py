"""Envelope validation for encrypted intake submissions.

The server treats ``encrypted`` as opaque: only presence, type and size are
checked, never the contents.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import HTTPException, Request

from intake_api.core.constants import INTAKE_ID_PATTERN


class PayloadKind(str, Enum):
    """Shape of the client's ``encrypted`` field."""
    TEXT = "text"  # a serialized ciphertext string, stored verbatim
    STRUCTURED = "structured"  # a JSON object/array, stored re-serialized


@dataclass(frozen=True)
class EncryptedPayload:
    """Tagged ``encrypted`` value plus its canonical serialized form."""
    kind: PayloadKind
    value: Any
    canonical: str

    @property
    def canonical_bytes(self) -> int:
        return len(self.canonical.encode("utf-8"))


@dataclass(frozen=True)
class IntakeEnvelope:
    """A validated submission: allowed version, lowercase id, tagged payload."""
    version: str
    id: str
    encrypted: EncryptedPayload


def _canonicalize(kind: PayloadKind, value: Any) -> str:
    if kind is PayloadKind.TEXT:
        return value
    if kind is PayloadKind.STRUCTURED:
        return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    raise ValueError(f"Unhandled payload kind: {kind}")


def build_payload(value: Any) -> EncryptedPayload:
    """Tag a raw ``encrypted`` value and compute its canonical form once."""
    if isinstance(value, str):
        kind = PayloadKind.TEXT
    elif isinstance(value, (dict, list)):
        kind = PayloadKind.STRUCTURED
    else:
        raise HTTPException(status_code=400, detail="Invalid 'encrypted' field type")
    return EncryptedPayload(kind=kind, value=value, canonical=_canonicalize(kind, value))


def normalize_intake_id(raw: str) -> str | None:
    """Lowercase an id and return it if it is 64-char hex, else None."""
    normalized = raw.lower()
    if INTAKE_ID_PATTERN.fullmatch(normalized):
        return normalized
    return None


async def read_body_limited(request: Request, max_bytes: int) -> bytes:
    """
    Read the request body, enforcing the size cap on the true byte count.

    A declared Content-Length over the cap is rejected before reading, but the
    header is never trusted to be accurate: bytes are counted as they stream in.
    """
    declared = request.headers.get("content-length")
    if declared:
        try:
            if int(declared) > max_bytes:
                raise HTTPException(413, f"Request body too large (max {max_bytes} bytes)")
        except ValueError:
            pass

    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise HTTPException(413, f"Request body too large (max {max_bytes} bytes)")
        chunks.append(chunk)
    return b"".join(chunks)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def loads_strict(raw: bytes) -> Any:
    """
    Parse RFC 8259 JSON only.

    NaN and Infinity literals raise ValueError; nesting deeper than the
    interpreter stack raises RecursionError. Callers handle both.
    """
    return json.loads(raw, parse_constant=_reject_constant)


def parse_json_body(raw: bytes) -> Any:
    try:
        return loads_strict(raw)
    except (ValueError, RecursionError):
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise HTTPException(400, "Invalid JSON")


def validate_envelope(body: Any, allowed_versions: frozenset[str]) -> IntakeEnvelope:
    """
    Validate a parsed submission, failing fast in a fixed order.

    1. body is a JSON object
    2. ``v`` is a non-empty string in the allowed-version set
    3. ``id`` is a non-empty string that is 64-char hex once lowercased
    4. ``encrypted`` is present and is a string or JSON object/array

    Raises:
        HTTPException 400: naming the failing field, nothing more
    """
    if not isinstance(body, dict):
        raise HTTPException(400, "Invalid request body")

    version = body.get("v")
    if not isinstance(version, str) or not version:
        raise HTTPException(400, "Missing or invalid 'v' field")
    if version not in allowed_versions:
        raise HTTPException(400, "Unsupported version")

    raw_id = body.get("id")
    if not isinstance(raw_id, str) or not raw_id:
        raise HTTPException(400, "Missing or invalid 'id' field")
    intake_id = normalize_intake_id(raw_id)
    if intake_id is None:
        raise HTTPException(400, "Invalid 'id' format")

    encrypted = body.get("encrypted")
    if encrypted is None:
        raise HTTPException(400, "Missing 'encrypted' field")

    return IntakeEnvelope(version=version, id=intake_id, encrypted=build_payload(encrypted))
