"""FastAPI application for the Scriptorium health endpoints.

Hosting platforms probe these routes to check the bot process is alive.
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request

from scriptorium import __version__
from scriptorium.api.health import router as health_router
from scriptorium.logging import get_logger

if TYPE_CHECKING:
    from scriptorium.config import Config

log = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    log.info("api_starting")
    yield
    log.info("api_stopping")


def create_app(config: "Config") -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Application configuration.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Scriptorium",
        description="Health and status endpoints for the Scriptorium Discord bot.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        log.debug(
            "request_complete",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response

    app.include_router(health_router)

    return app
