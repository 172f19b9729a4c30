"""Security utilities for envelope signatures and client IP hashing."""

import hashlib
import hmac


# =============================================================================
# Envelope Signatures (X-Intake-HMAC)
# =============================================================================

def compute_envelope_signature(secret: str, intake_id: str, ciphertext: str) -> str:
    """
    Compute the hex HMAC-SHA256 signature for an intake envelope.

    The signed message is ``id + "." + ciphertext``. Callers must pass the
    normalized (lowercase) id; a signature over another casing will not verify.
    """
    message = f"{intake_id}.{ciphertext}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_envelope_signature(
    secret: str,
    intake_id: str,
    ciphertext: str,
    provided: str | None,
) -> bool:
    """Constant-time check of a client-supplied signature (hex, any casing)."""
    if not secret or not provided:
        return False
    expected = compute_envelope_signature(secret, intake_id, ciphertext)
    candidate = provided.strip().lower()
    if len(candidate) != len(expected):
        return False
    return hmac.compare_digest(expected.encode("ascii"), candidate.encode("ascii", "replace"))


# =============================================================================
# Client IP Hashing
# =============================================================================

def hash_client_ip(ip: str | None, salt: str | None) -> str | None:
    """
    Salted one-way hash of a client IP.

    The ":" delimiter keeps salt/ip boundaries unambiguous
    (salt="abc", ip="def" vs salt="ab", ip="cdef").
    """
    if not ip or not salt:
        return None
    return hashlib.sha256(f"{salt}:{ip}".encode("utf-8")).hexdigest()

