"""
CodeRefactor API - Main FastAPI Application
LLM-backed refactoring of JavaScript, TypeScript, React and Node.js code
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import logging

from coderefactor.core.config import settings
from coderefactor.core.logging import configure_logging, log_http_request
from coderefactor.db.database import check_db_connection, close_db, init_db
from coderefactor.api.routes import refactor
from coderefactor.api.exception_handlers import (
    error_response,
    rate_limit_response,
    setup_exception_handlers,
)
from coderefactor.services.rate_limiter import (
    RateLimitConfig,
    RateLimitExceeded,
    TokenBucketRateLimiter,
)
from coderefactor.services.refactor import RefactorService

configure_logging(settings.DEBUG)

logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

rate_limiter = TokenBucketRateLimiter(
    RateLimitConfig(
        requests=settings.RATE_LIMIT_MAX,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")

    await init_db()

    app.state.refactor_service = RefactorService.from_settings(settings)
    logger.info(f"Refactor service ready: model={settings.LLM_MODEL} base_url={settings.LLM_API_BASE_URL}")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_db()
    logger.info("Process terminated")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# Setup centralized exception handlers
setup_exception_handlers(app)


@app.middleware("http")
async def limit_requests(request: Request, call_next):
    """Per-IP rate limit and request body size limit"""
    client_ip = request.client.host if request.client else "unknown"

    try:
        headers = await rate_limiter.check_ip(client_ip)
    except RateLimitExceeded as e:
        return rate_limit_response(request, e)

    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > settings.body_limit_bytes:
        return error_response(413, f"Request body too large. Maximum size is {settings.BODY_LIMIT_MB}MB")

    response = await call_next(request)
    for name, value in headers.items():
        response.headers[name] = str(value)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    log_http_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=(time.perf_counter() - start) * 1000,
        client_ip=request.client.host if request.client else None,
    )
    return response


# Added last so it is outermost and also covers the 413 and 429 responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)


# Include routers
app.include_router(refactor.router, prefix="/api/refactor", tags=["Refactor"])


@app.get("/api/health")
async def health_check():
    """Liveness and basic diagnostics"""
    database_ok = await check_db_connection()
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
        "database": "connected" if database_ok else "disconnected",
        "model": settings.LLM_MODEL,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "coderefactor.main:app",
        host=settings.BACKEND_HOST,
        port=settings.BACKEND_PORT,
        reload=settings.DEBUG
    )
