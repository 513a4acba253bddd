"""
FastAPI application entry point.

This module initializes the FastAPI application with:
- Lifespan management (provider configuration at startup)
- Middleware configuration (CORS, rate limiting)
- Exception handlers
- Route registration

Usage:
    Run with uvicorn:
        uvicorn scripture_gateway.main:app --host 0.0.0.0 --port 8080

    Or with the server.py entry point:
        python server.py
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from scripture_gateway.config import get_logger, settings
from scripture_gateway.dependencies import limiter
from scripture_gateway.exceptions import GatewayException, ValidationError
from scripture_gateway.routes import health
from scripture_gateway.routes import scripture as scripture_routes
from scripture_gateway.state import AppState

logger = get_logger("scripture_gateway.main")

API_TITLE = "Scripture Gateway API"
API_VERSION = "1.0.0"


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup builds the provider registry and configures it from settings.
    """
    logger.info("=" * 60)
    logger.info("%s starting...", API_TITLE)
    logger.info("=" * 60)
    logger.info(
        "Configuration | timeout=%ss | attempts=%d | backoff=%.1fs..%.1fs | disabled=%s",
        settings.PROVIDER_TIMEOUT_SECONDS,
        settings.MAX_ATTEMPTS,
        settings.RETRY_INITIAL_DELAY,
        settings.RETRY_MAX_DELAY,
        ",".join(sorted(settings.DISABLED_PROVIDERS)) or "none",
    )

    try:
        app.state.app_state = AppState.create()
    except Exception as exc:
        logger.critical("Startup failed: %s", exc, exc_info=True)
        raise

    logger.info(
        "Service state: %s | ready=%s",
        app.state.app_state.service.state.value,
        app.state.app_state.is_ready(),
    )
    logger.info("Server ready to accept requests")
    logger.info("=" * 60)

    yield

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    application = FastAPI(
        title=API_TITLE,
        description=(
            "Scripture text, key takeaways, scoring and verse search with "
            "priority-ordered provider fallback."
        ),
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    configure_rate_limiting(application)
    configure_cors(application)
    configure_exception_handlers(application)
    configure_routes(application)

    return application


# =============================================================================
# Rate Limiting
# =============================================================================

def configure_rate_limiting(application: FastAPI) -> None:
    """Attach the shared limiter used by the scripture routes."""
    application.state.limiter = limiter
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.debug("Rate limiting configured: %s", settings.RATE_LIMIT)


# =============================================================================
# CORS Configuration
# =============================================================================

def configure_cors(application: FastAPI) -> None:
    """Configure CORS middleware."""
    cors_origins = settings.CORS_ORIGINS_LIST
    allow_credentials = cors_origins != ["*"]

    if not allow_credentials:
        logger.warning(
            "CORS: Wildcard origin '*' configured. "
            "This disables credentials and is NOT recommended for production."
        )
    else:
        logger.info("CORS: Configured for origins: %s", cors_origins)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


# =============================================================================
# Exception Handlers
# =============================================================================

def configure_exception_handlers(application: FastAPI) -> None:
    """Configure exception handlers."""

    @application.exception_handler(GatewayException)
    async def gateway_exception_handler(
        request: Request,
        exc: GatewayException,
    ) -> JSONResponse:
        """Render gateway errors without stack traces."""
        logger.warning(
            "GatewayException | path=%s | type=%s | status=%d | message=%s",
            request.url.path,
            exc.error_code,
            exc.status_code,
            exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Invalid input is a 400 with the first validation message."""
        errors = exc.errors()
        error = ValidationError(errors[0].get("msg", "Invalid request") if errors else "Invalid request")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @application.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unhandled exceptions."""
        logger.error(
            "Unhandled exception | path=%s | type=%s | error=%s",
            request.url.path,
            type(exc).__name__,
            exc,
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "error_type": "InternalError",
            },
        )


# =============================================================================
# Route Configuration
# =============================================================================

def configure_routes(application: FastAPI) -> None:
    """Configure application routes."""
    application.include_router(health.router)
    application.include_router(scripture_routes.router)


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()
