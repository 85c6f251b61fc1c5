"""
Student Registry API

Main FastAPI application with security hardening.
"""

import logging
import secrets
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from sqlalchemy.exc import IntegrityError
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.v1.api import api_router
from app.auth.middleware import AuthorizationMiddleware
from app.core.config import (
    DEBUG,
    ENABLE_DOCS,
    ENABLE_HSTS,
    LOG_LEVEL,
    TRUSTED_HOSTS,
    get_cors_allow_origins,
)
from app.core.database import init_db, close_db
from app.core.exceptions import AlreadyExists, Conflict, RegistryError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# =============================================================================
# Application Lifespan (startup/shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    logger.info("Starting Student Registry API %s", VERSION)

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down Student Registry API")
    await close_db()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Student Registry API",
    version=VERSION,
    description="Role-gated records for students, teachers, courses, enrollments and absences",
    lifespan=lifespan,
    docs_url="/docs" if ENABLE_DOCS else None,
    redoc_url="/redoc" if ENABLE_DOCS else None,
)


# =============================================================================
# Security Middleware
# =============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)

        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Referrer policy
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Swagger UI needs its CDN assets
        if request.url.path.startswith(("/docs", "/redoc")):
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://fastapi.tiangolo.com"
            )
        else:
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # HSTS (only enable in production with HTTPS)
        if ENABLE_HSTS:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add unique request ID for tracing."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-ID") or secrets.token_urlsafe(8)
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response


# =============================================================================
# Add Middleware (order matters - first added = last executed)
# =============================================================================

# Authorization - innermost, runs after the request id is assigned
app.add_middleware(AuthorizationMiddleware)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# Trusted hosts (prevent host header attacks)
if "*" not in TRUSTED_HOSTS:
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=TRUSTED_HOSTS)

# CORS - outermost, so preflights and error responses carry CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# Routes
# =============================================================================

@app.get("/", tags=["root"])
def home():
    """Root endpoint."""
    return {
        "name": "Student Registry API",
        "version": VERSION,
        "docs": "/docs",
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    from datetime import datetime, timezone
    from sqlalchemy import text
    from app.core.database import engine

    # Check database connection
    db_status = "healthy"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check database probe failed: %s", e)
        db_status = f"unhealthy: {type(e).__name__}"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "database": db_status,
    }


# Include API routers
app.include_router(api_router, prefix="/api")


# =============================================================================
# Error Handlers
# =============================================================================

@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    """Render domain errors as {"detail": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=exc.headers,
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Constraint violations that slipped past the pre-checks."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning("[%s] Integrity error: %s", request_id, exc.orig)

    message = str(exc.orig).lower()
    if "unique" in message or "duplicate" in message:
        error = AlreadyExists("Resource already exists")
    else:
        error = Conflict()
    return JSONResponse(status_code=error.status_code, content={"detail": error.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler to prevent information leakage."""
    request_id = getattr(request.state, "request_id", "unknown")
    if DEBUG:
        logger.exception("[%s] Unhandled exception", request_id)
    else:
        logger.error("[%s] Unhandled exception: %s", request_id, exc)

    # Return sanitized error to client
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An internal error occurred",
            "request_id": request_id,
        },
    )


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=LOG_LEVEL.lower(),
    )
