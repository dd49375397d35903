"""
Appraisal Lifecycle Orchestrator - FastAPI application

- Routers are mounted under settings.api_prefix; health probes stay at the root
- The correlation id middleware wraps everything, so every log line carries it
- Every error leaves as {"success": false, "errors": [...]}
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from appraisal.core.config import settings
from appraisal.core.exceptions import AppException
from appraisal.core.logging import setup_logging
from appraisal.core.middleware import CorrelationIdMiddleware, LoggingMiddleware
from appraisal.database import SessionLocal, init_db
from appraisal.routers.api_router import api_router

# ============================================================================
# LOGGING SETUP
# ============================================================================
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


# ============================================================================
# LIFESPAN MANAGEMENT
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")
    try:
        init_db()
    except SQLAlchemyError as e:
        logger.error(f"Could not create the appraisal schema: {e}")
        raise
    yield
    logger.info(f"{settings.app_name} stopped")


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Orchestrates appraisal campaigns, evaluations and their follow-up schedule",
    lifespan=lifespan,
)

# ============================================================================
# MIDDLEWARE STACK (last added runs first)
# ============================================================================
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================
def _error_response(status_code: int, errors: List[Dict[str, Any]]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "errors": errors})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies, unknown patch fields and bad query parameters."""
    errors = []
    for error in exc.errors():
        # Drop the leading "body"/"query" marker: ("body", "meeting_date") -> "meeting_date"
        location = [str(part) for part in error.get("loc", ())[1:]]
        errors.append({
            "field": ".".join(location) or "request",
            "msg": error["msg"],
            "code": "REQUEST_VALIDATION_ERROR",
        })
    logger.info(f"Rejected request to {request.url.path}", extra={"errors": errors})
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, errors)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    logger.warning(exc.message, extra={"code": exc.error_code, "path": request.url.path})
    return _error_response(
        exc.status_code, [{"msg": exc.message, "code": exc.error_code, "details": exc.details}]
    )


@app.exception_handler(StarletteHTTPException)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(exc.status_code, [{"msg": message, "code": "HTTP_ERROR"}])


@app.exception_handler(SQLAlchemyError)
async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage error on {request.url.path}: {exc}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        [{"msg": "The appraisal store could not complete the request.", "code": "STORAGE_ERROR"}],
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        [{"msg": "An unexpected server error occurred.", "code": "INTERNAL_ERROR"}],
    )


# ============================================================================
# ROUTERS
# ============================================================================
app.include_router(api_router, prefix=settings.api_prefix)


# ============================================================================
# OPERATIONAL ENDPOINTS (at root level)
# ============================================================================
@app.get("/", tags=["Health"])
def root():
    return {
        "message": f"{settings.app_name} API",
        "version": settings.version,
        "api": settings.api_prefix,
    }


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness probe."""
    return {
        "status": "up",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "build_id": settings.build_id,
        "environment": settings.environment,
    }


@app.get("/readiness", tags=["Health"])
def readiness_check():
    """Readiness probe: the appraisal store must answer."""
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Appraisal store unavailable")
    return {"status": "ready", "components": {"database": "connected"}}
