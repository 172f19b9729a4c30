"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from intake_api.core.config import settings
from intake_api.core.cors import IntakeCorsMiddleware
from intake_api.db.session import engine

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and not settings.is_dev:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Don't send IPs/identity headers to Sentry
    )
    logging.info("Sentry initialized for error tracking")


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Sealed Intake API",
    description="Encrypted intake submissions and operator workflow",
    version=settings.VERSION,
    docs_url="/docs" if settings.is_dev else None,
    redoc_url="/redoc" if settings.is_dev else None,
)

# Exact-origin CORS + admin no-store (handles preflight before routing/auth)
app.add_middleware(IntakeCorsMiddleware)


# ============================================================================
# Error envelope: {"ok": false, "error": "..."}
# ============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"ok": False, "error": "Invalid request"})


# ============================================================================
# Routers
# ============================================================================

from intake_api.routers import admin_intake, intake

# Public encrypted intake
app.include_router(intake.router)

# Operator workflow (identity header required)
app.include_router(admin_intake.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/healthz")
def healthz():
    """Liveness probe (no dependencies)."""
    return {"status": "ok"}


@app.get("/readyz")
def readyz():
    """Readiness probe: verifies database connectivity."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    return readyz()
