"""FastAPI dependencies for operator authentication and database access."""

from dataclasses import dataclass
from typing import Generator

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from intake_api.core.config import settings
from intake_api.db.session import SessionLocal


@dataclass(frozen=True)
class OperatorIdentity:
    """Operator asserted by the access-control platform in front of the admin API."""
    email: str


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_operator(request: Request) -> OperatorIdentity:
    """
    Verify the platform-asserted operator identity.

    Defense-in-depth: the admin API sits behind an access-control platform
    (e.g. Cloudflare Access), but the identity header and the ADMIN_EMAILS
    allowlist are still checked here.

    Raises:
        HTTPException 401: Identity header missing
        HTTPException 403: Identity not in the configured allowlist
    """
    # Starlette headers are case-insensitive
    email = (request.headers.get(settings.ADMIN_IDENTITY_HEADER) or "").strip()
    if not email:
        raise HTTPException(status_code=401, detail="unauthorized")

    allowed = settings.ADMIN_EMAILS
    if allowed and email.lower() not in allowed:
        raise HTTPException(status_code=403, detail="unauthorized")

    return OperatorIdentity(email=email)
