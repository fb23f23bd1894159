"""FastAPI dependency injection for the Scriptorium API.

Provides access to shared resources via app.state.
"""

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from scriptorium.bot import ScriptoriumBot


def get_db(request: Request) -> "Engine | None":
    """Get database engine from app state, if configured."""
    return getattr(request.app.state, "db", None)


def get_bot(request: Request) -> "ScriptoriumBot | None":
    """Get the Discord client from app state.

    The client is created after the API starts, so this is None until
    ``run_bot`` has registered it in ``app.state.bot_ref``.
    """
    bot_ref = getattr(request.app.state, "bot_ref", None)
    return bot_ref[0] if bot_ref else None
