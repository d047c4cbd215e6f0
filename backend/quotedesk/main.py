"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .store import get_store
from .utils import APIError
from .models import ErrorResponse


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Create store instance
store = get_store()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Application starting up...")
    logger.info(f"Settings: host={settings.backend_host}, port={settings.backend_port}")
    logger.info(
        f"Photo fetch: concurrency={settings.photo_fetch_concurrency}, "
        f"timeout={settings.photo_fetch_timeout_seconds}s"
    )
    logger.info(f"Templates directory: {settings.templates_dir_path}")
    logger.info(f"Store stats: {store.get_stats()}")

    yield

    # Shutdown
    logger.info("Application shutting down...")
    store.change_feed.close_all()
    logger.info("Application stopped")


# Create FastAPI app
app = FastAPI(
    title="QuoteDesk",
    description="Sales quotation and activity service",
    version="0.1.0",
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handler for APIError
@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle API errors with proper response format."""
    error_response = ErrorResponse(
        success=False,
        message=exc.message,
        error_code=exc.error_code.value,
    )
    log = logger.warning if exc.is_client_error else logger.error
    log(f"APIError {exc.status_code} on {request.method} {request.url.path}: {exc.error_code.value} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.to_content(),
    )


# General exception handler
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions."""
    error_response = ErrorResponse(
        success=False,
        message="Server Error",
        error_code="INTERNAL_ERROR",
    )
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response.to_content(),
    )


# Health check endpoint
@app.get("/health", tags=["System"])
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns:
        Health status and store statistics
    """
    return {
        "status": "healthy",
        "service": "quotedesk",
        "version": "0.1.0",
        "store": store.get_stats(),
    }


# Register API routers
from .api.routes import health, quotation, activity, accounts

app.include_router(health.router)
app.include_router(quotation.router)
app.include_router(activity.router)
app.include_router(accounts.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.backend_debug,
    )
