"""Main entry point for the Feed Gateway application."""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from feed_gateway import __version__
from feed_gateway.api.routes import router
from feed_gateway.core.config import Settings, settings as default_settings
from feed_gateway.core.exceptions import GatewayError
from feed_gateway.core.logging import get_logger, setup_logging
from feed_gateway.feeds.client import FeedsClient

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management
    Builds the shared feed client unless one was injected, and closes it on shutdown
    """
    settings: Settings = app.state.settings
    owns_client = app.state.feeds_client is None
    if owns_client:
        app.state.feeds_client = FeedsClient.from_settings(settings)
    
    logger.info(
        "Starting Feed Gateway",
        host=settings.HOST,
        port=settings.PORT,
        debug=settings.DEBUG,
        log_level=settings.LOG_LEVEL,
        feed_service_url=settings.STREAM_BASE_URL
    )
    
    yield
    
    logger.info("Shutting down Feed Gateway...")
    if owns_client:
        await app.state.feeds_client.aclose()
        app.state.feeds_client = None


async def gateway_exception_handler(request: Request, exc: GatewayError):
    """Render gateway errors as ``{"error": message}``"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Request failed",
        url=str(request.url),
        method=request.method,
        status_code=exc.status_code,
        error=exc.message,
        **exc.details
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report framework-level validation failures in the gateway's error shape"""
    errors = exc.errors()
    logger.warning(
        "Request validation failed",
        url=str(request.url),
        method=request.method,
        errors=errors
    )
    message = errors[0]["msg"] if errors else "Request validation failed"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message}
    )


async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler for unhandled errors"""
    logger.error(
        "Unhandled exception",
        url=str(request.url),
        method=request.method,
        error=str(exc),
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or "Internal server error occurred"}
    )


def create_app(
    feeds_client: Optional[FeedsClient] = None,
    settings: Optional[Settings] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.
    
    Args:
        feeds_client: Client shared by all handlers; built from settings at startup when omitted
        settings: Settings override, defaults to the environment
    """
    settings = settings or default_settings
    
    app = FastAPI(
        title="Feed Gateway",
        description="HTTP gateway to the activity feed service",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "health", "description": "Health check"},
            {"name": "users", "description": "User tokens and user records"},
            {"name": "feeds", "description": "Feeds and feed memberships"},
            {"name": "feed-groups", "description": "Feed group configuration"},
            {"name": "follows", "description": "Follow edges between feeds"},
            {"name": "activities", "description": "Activities and comments"},
            {"name": "moderation", "description": "Content flagging"}
        ]
    )
    app.state.settings = settings
    app.state.feeds_client = feeds_client
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    
    app.add_exception_handler(GatewayError, gateway_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
    
    app.include_router(router)
    
    return app


# Create app instance for uvicorn to find
app = create_app()


def main() -> None:
    """Main entry point for the application."""
    setup_logging(default_settings)
    
    uvicorn.run(
        app,
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
        access_log=True,
        server_header=False,
        date_header=True,
    )


if __name__ == "__main__":
    main()
