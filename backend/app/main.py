# backend/app/main.py

import logging
import os
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import TimeoutError as SA_TimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401  (registers mappers before create_all)
from .api import (
    api_equipment,
    api_gig,
    api_organization,
    api_places,
    api_user,
    api_ws,
)
from .core.config import settings
from .core.observability import setup_logging
from .database import Base, SessionLocal, engine
from .utils import error_body
from .utils.status_logger import register_status_listeners

setup_logging()
logger = logging.getLogger(__name__)

# Create tables for local/dev runs; migrations own the schema elsewhere.
if os.getenv("SKIP_DB_BOOTSTRAP", "0") != "1":
    Base.metadata.create_all(bind=engine)
register_status_listeners()

_BOOT_TS = time.time()

app = FastAPI(title="Gig Staffing API", default_response_class=ORJSONResponse)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", settings.CORS_ORIGINS)


@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    """Return JSON responses for unexpected errors and log them."""
    try:
        response = await call_next(request)
    except StarletteHTTPException as exc:
        logger.error("HTTP error %s at %s: %s", exc.status_code, request.url.path, exc.detail)
        response = ORJSONResponse(status_code=exc.status_code, content=error_body(exc.detail))
    except SA_TimeoutError as exc:  # DB pool timeout -> 503 to reduce retry storms
        logger.error("DB timeout at %s: %s", request.url.path, str(exc))
        response = ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "Database busy, please retry"},
        )
    except Exception as exc:  # pragma: no cover - generic handler
        logger.exception("Unhandled error: %s", exc)
        response = ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal Server Error"},
        )

    # Ensure the CORS headers are present even when an exception occurs
    origin = request.headers.get("origin")
    if origin and origin in settings.CORS_ORIGINS:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        if "Vary" not in response.headers:
            response.headers["Vary"] = "Origin"
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error("HTTP error %s at %s: %s", exc.status_code, request.url.path, exc.detail)
    return ORJSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


def _field_name(loc) -> str:
    parts = [p for p in loc if p not in ("body", "query", "path")]
    # Trailing ints are list positions; name the list instead.
    for part in reversed(parts):
        if isinstance(part, str):
            return part
    return "form"


def _error_message(err: dict) -> str:
    msg = str(err.get("msg") or "Invalid value")
    for prefix in ("Value error, ", "Assertion failed, "):
        if msg.startswith(prefix):
            return msg[len(prefix):]
    return msg


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return validation failures as ``400 {"error", "field_errors"}``."""
    errors = exc.errors()
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    field_errors = {}
    for err in errors:
        field_errors.setdefault(_field_name(err.get("loc") or ()), _error_message(err))
    message = _error_message(errors[0]) if errors else "Invalid request"
    return ORJSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message, "field_errors": field_errors},
    )


@app.get("/health", tags=["health"])
def health():
    """Readiness check: the process responds and the database answers."""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        ready = True
    except Exception as exc:
        logger.warning("health.db_ping_failed: %s", exc)
        ready = False
    finally:
        db.close()
    return ORJSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "error",
            "uptime_s": round(time.time() - _BOOT_TS, 1),
            "pid": os.getpid(),
        },
        headers={"Cache-Control": "no-store"},
    )


api_prefix = settings.API_V1_STR  # e.g. "/api/v1"; empty by default

app.include_router(api_user.router, prefix=f"{api_prefix}/users")
app.include_router(api_organization.router, prefix=f"{api_prefix}/organizations")
app.include_router(api_organization.invitations_router, prefix=f"{api_prefix}/invitations")
app.include_router(api_gig.router, prefix=f"{api_prefix}/gigs")
app.include_router(api_equipment.assets_router, prefix=f"{api_prefix}/assets")
app.include_router(api_equipment.kits_router, prefix=f"{api_prefix}/kits")
app.include_router(api_places.router, prefix=f"{api_prefix}/places")
app.include_router(api_ws.router)
