"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api.admin import router as admin_router
from .api.billing import router as billing_router
from .api.routes import metadata_router, router
from .core.config import get_settings
from .core.errors import BrokerError, InternalError
from .core.orchestrator import Orchestrator
from .core.security import RequestLoggingMiddleware, SecurityHeadersMiddleware, limiter
from .subscriptions import SubscriptionStore
from .subscriptions.validator import USER_CONTEXT_HEADERS

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    """The error envelope every failure uses."""
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def broker_error_handler(request: Request, exc: BrokerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        return error_response(405, "Method not allowed")
    return error_response(exc.status_code, str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = ", ".join(
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
        for err in exc.errors()
    )
    return error_response(400, f"Invalid request: {details}")


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return error_response(429, f"Rate limit exceeded: {exc.detail}")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, InternalError().message)


def create_app(
    store: Optional[SubscriptionStore] = None,
    orchestrator: Optional[Orchestrator] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        store: Subscription store for the stateful billing routes (fresh in-memory store when None)
        orchestrator: Generation engine (built from settings when None)
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info(f"Starting dualgen in {settings.environment} mode")

        if not settings.v0_api_key or not settings.ai_gateway_api_key:
            logger.warning("Provider API keys missing. Only BYOK requests can reach the missing provider.")

        yield

        logger.info("Shutting down dualgen")

    app = FastAPI(
        title="dualgen - Dual-AI UI Generation Broker",
        description="Meters UI-generation requests by subscription and fans them out to v0 and Claude.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.store = store if store is not None else SubscriptionStore()
    app.state.orchestrator = orchestrator if orchestrator is not None else Orchestrator(settings=settings)

    # Add rate limiter state and exception handlers
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(BrokerError, broker_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Add security middleware (before CORS)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Admin-Key", *USER_CONTEXT_HEADERS],
    )

    app.include_router(router)
    app.include_router(metadata_router)
    app.include_router(billing_router, prefix="/api/v1")
    app.include_router(admin_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "dualgen",
            "version": __version__,
            "description": "Dual-AI UI Generation Broker",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "providers": {
                "v0": bool(settings.v0_api_key),
                "gateway": bool(settings.ai_gateway_api_key),
            },
        }

    return app


app = create_app()
