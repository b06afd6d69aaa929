"""FastAPI main application for the civic polls backend."""

from contextlib import asynccontextmanager
import time
from typing import Annotated

import asyncpg
from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from civicpoll.api.deps import rate_limit_api
from civicpoll.api.routes import admin, auth, candidates, issues, polls, reference
from civicpoll.core.config import settings
from civicpoll.core.database import close_db_pool, get_db, get_pool, init_db_pool
from civicpoll.core.exceptions import ServiceError
from civicpoll.core.logging_config import get_logger, setup_logging
from civicpoll.core.responses import error_body, error_response_dict, success_response
from civicpoll.services.poll_scheduler import start_poll_scheduler

# Setup logging
setup_logging()
logger = get_logger(__name__)


def _details(exc: Exception) -> str | None:
    """Raw error text is only exposed in development."""
    return str(exc) if settings.ENVIRONMENT == "development" else None


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; frame-ancestors 'none'"
        )

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the pool and start the expiry sweep; undo both on shutdown."""
    logger.info("Starting civic polls backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    scheduler = None
    if settings.ENVIRONMENT != "test":
        await init_db_pool(settings)
        if settings.POLL_SWEEP_ENABLED:
            scheduler = start_poll_scheduler(settings)

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
    if settings.ENVIRONMENT != "test":
        await close_db_pool()
    logger.info("Shutting down civic polls backend...")


app = FastAPI(
    title="Civic Polls API",
    description="""
    Opinion polling and civic issue reporting for Kenyan voters.

    - Admins create polls with candidates and move them draft -> active -> closed
    - Registered voters cast one vote per poll; tallies are computed live
    - Active polls past their end date are closed automatically
    - Citizens report local issues; admins triage and respond

    Authenticate with `Authorization: Bearer <token>` from `/api/auth/login`.
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add security headers middleware FIRST (before CORS)
app.add_middleware(SecurityHeadersMiddleware)

if settings.ENVIRONMENT == "development":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "User-Agent"],
    )


# ============================================
# EXCEPTION HANDLERS
# ============================================


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with the standard error envelope."""
    if isinstance(exc.detail, dict):
        return error_response_dict(exc.detail, exc.status_code, headers=exc.headers)
    return error_response_dict(error_body(str(exc.detail)), exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors[field or "body"] = error["msg"].removeprefix("Value error, ")

    first = next(iter(errors.values()), "Validation failed")
    return error_response_dict(
        error_body("Validation failed", details=first, errors=errors),
        status.HTTP_400_BAD_REQUEST,
    )


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    return error_response_dict(error_body(exc.message, exc.details), exc.status_code)


@app.exception_handler(asyncpg.UniqueViolationError)
async def unique_violation_handler(request: Request, exc: asyncpg.UniqueViolationError):
    logger.warning(f"Unique violation on {request.url.path}: {exc}")
    return error_response_dict(
        error_body("Resource already exists", _details(exc)), status.HTTP_409_CONFLICT
    )


@app.exception_handler(asyncpg.ForeignKeyViolationError)
async def foreign_key_violation_handler(
    request: Request, exc: asyncpg.ForeignKeyViolationError
):
    logger.warning(f"Foreign key violation on {request.url.path}: {exc}")
    return error_response_dict(
        error_body("Invalid reference to related resource", _details(exc)),
        status.HTTP_400_BAD_REQUEST,
    )


@app.exception_handler(asyncpg.NotNullViolationError)
async def not_null_violation_handler(request: Request, exc: asyncpg.NotNullViolationError):
    logger.warning(f"Not-null violation on {request.url.path}: {exc}")
    return error_response_dict(
        error_body("Required field missing", _details(exc)), status.HTTP_400_BAD_REQUEST
    )


@app.exception_handler(asyncpg.PostgresError)
async def database_exception_handler(request: Request, exc: asyncpg.PostgresError):
    """Handle database errors."""
    logger.error(f"Database error: {exc}", exc_info=True)
    return error_response_dict(
        error_body("Database error occurred", _details(exc)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response_dict(
        error_body("Internal server error", _details(exc)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


# ============================================
# ROUTERS
# ============================================

api_router = APIRouter(prefix="/api", dependencies=[Depends(rate_limit_api)])
api_router.include_router(auth.router)
api_router.include_router(reference.router)
api_router.include_router(candidates.router)
api_router.include_router(polls.router)
api_router.include_router(issues.router)
api_router.include_router(admin.router)

app.include_router(api_router)


@app.get("/health")
async def health_check(conn: Annotated[asyncpg.Connection, Depends(get_db)]):
    """Liveness plus a database round trip."""
    health_status = {"status": "healthy", "timestamp": time.time(), "checks": {}}

    try:
        await conn.fetchval("SELECT 1")
        pool = get_pool()
        pool_info = {}
        if pool:
            pool_info = {
                "size": pool.get_size(),
                "max": pool.get_max_size(),
                "idle": pool.get_idle_size(),
            }
        health_status["checks"]["database"] = {"status": "healthy", "pool": pool_info}
    except (asyncpg.PostgresError, OSError) as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database check failed: {e!s}",
        }
        return error_response_dict(
            error_body("Service unavailable", details=_details(e)) | {"data": health_status},
            status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return success_response(data=health_status)


@app.get("/")
async def root():
    return success_response(
        data={"name": "Civic Polls API", "version": app.version, "docs": "/docs"},
        message="Civic Polls API is running",
    )
