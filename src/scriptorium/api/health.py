"""Health check endpoints for the Scriptorium API."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from scriptorium import __version__
from scriptorium.api.deps import get_bot, get_db

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from scriptorium.bot import ScriptoriumBot

router = APIRouter(tags=["health"])


class StatusResponse(BaseModel):
    """Service status response model."""

    status: str
    uptime_seconds: float
    timestamp: datetime
    guilds: int


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    timestamp: datetime
    database: str


@router.get("/", response_model=StatusResponse)
async def service_status(
    bot: "ScriptoriumBot | None" = Depends(get_bot),
) -> StatusResponse:
    """Report whether the bot is running and how many guilds it sees."""
    return StatusResponse(
        status="running" if bot is not None and bot.is_ready() else "starting",
        uptime_seconds=round(bot.uptime_seconds, 1) if bot is not None else 0.0,
        timestamp=datetime.now(timezone.utc),
        guilds=len(bot.guilds) if bot is not None else 0,
    )


@router.get("/health", response_model=HealthResponse)
async def health_check(db: "Engine | None" = Depends(get_db)) -> HealthResponse:
    """Check system health.

    Overall status is 'ok' if the database answers, 'degraded' otherwise.
    """
    db_status = "error"
    if db is not None:
        try:
            with db.connect() as conn:
                conn.execute(text("SELECT 1"))
            db_status = "ok"
        except SQLAlchemyError:
            db_status = "error"

    return HealthResponse(
        status="ok" if db_status == "ok" else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database=db_status,
    )
