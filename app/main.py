"""
ReviewDesk API - FastAPI application entry point.
"""
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import get_settings
from .database import engine, Base
from .logging_config import api_logger
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .limiter import limiter
from .responses import register_exception_handlers
from .routes import (
    scheduled_qna_router,
    scheduled_posts_router,
    users_router,
    settings_router,
    activity_router,
    ai_generation_router,
    integrations_router,
    health_router,
)

settings = get_settings()

# Create tables (in production, use migrations instead)
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown"""
    # Startup
    run_worker = os.environ.get("REVIEWDESK_RUN_WORKER", "").lower() in ("1", "true", "yes")
    worker = None

    if run_worker:
        from .worker.publishing import get_publishing_worker
        worker = get_publishing_worker()
        worker.start_background()
        api_logger.info("Started publishing worker in background")

    yield  # App is running

    # Shutdown
    if worker is not None and worker.stop():
        api_logger.info("Stopped publishing worker on shutdown")


app = FastAPI(
    title=settings.app_name,
    description="Schedule and publish Google Business Profile Q&A and posts",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Domain errors, request validation and unhandled exceptions
register_exception_handlers(app)

# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware (only in debug mode)
if settings.debug:
    app.add_middleware(RequestLoggingMiddleware)

# CORS - Properly configured with specific methods
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=3600,  # Cache preflight requests for 1 hour
)

# Routes
app.include_router(scheduled_qna_router)
app.include_router(scheduled_posts_router)
app.include_router(users_router)
app.include_router(settings_router)
app.include_router(activity_router)
app.include_router(ai_generation_router)
app.include_router(integrations_router)
app.include_router(health_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": settings.app_name,
        "docs": "/api/docs" if settings.debug else "Disabled in production",
    }
