# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the SmartPhoto API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.dependencies import get_download_client, get_job_client
from app.exceptions import (
    SmartPhotoException,
    application_error_handler,
    smartphoto_exception_handler,
    validation_exception_handler,
)
from app.routers import health, tasks, results, uploads, payments
from app.auth import routes as auth_routes
from lib.utils import ApplicationError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    - Startup: log configuration
    - Shutdown: close the pooled HTTP clients if they were created
    """
    logger.info(f"Starting SmartPhoto API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    if not settings.stripe_configured:
        logger.info("Stripe keys not set; payment endpoints will answer 503")

    yield

    logger.info("Shutting down SmartPhoto API")
    if get_job_client.cache_info().currsize:
        get_job_client().close()
    if get_download_client.cache_info().currsize:
        get_download_client().close()


# Create FastAPI application
app = FastAPI(
    title="SmartPhoto API",
    description="""
## AI Image Editing API

Upload a photo, describe the edit, and poll until the result is ready.

### How It Works

1. **Upload** - `POST /api/v1/uploads` with a jpeg/png/webp image
2. **Create a Task** - `POST /api/v1/tasks` with the upload id, edit function and prompt
3. **Poll** - `GET /api/v1/tasks/{taskId}` every 3 seconds until `succeeded` or `failed`
4. **Save** - `POST /api/v1/results/{resultId}/save` to keep a result image

All responses use the envelope `{"success": true, "data": ...}`; errors are
`{"success": false, "error": "...", "code": "..."}`.
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Inspect the caller's Supabase token"},
        {"name": "Tasks", "description": "Create and poll image edit tasks"},
        {"name": "Results", "description": "Save edit results"},
        {"name": "Uploads", "description": "Upload images and videos"},
        {"name": "Payments", "description": "Stripe checkout and payment intents"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(SmartPhotoException, smartphoto_exception_handler)
app.add_exception_handler(ApplicationError, application_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

API_PREFIX = "/api/v1"

# Authentication endpoints
app.include_router(auth_routes.router, prefix=f"{API_PREFIX}/auth", tags=["Auth"])

# Health check endpoints
app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])

# Image edit task endpoints
app.include_router(tasks.router, prefix=f"{API_PREFIX}/tasks", tags=["Tasks"])

# Edit result endpoints
app.include_router(results.router, prefix=f"{API_PREFIX}/results", tags=["Results"])

# Direct upload endpoints
app.include_router(uploads.router, prefix=f"{API_PREFIX}/uploads", tags=["Uploads"])

# Stripe endpoints
app.include_router(payments.router, prefix=f"{API_PREFIX}/payments", tags=["Payments"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "SmartPhoto API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
