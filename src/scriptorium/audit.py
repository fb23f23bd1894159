"""Message audit log for server activity statistics.

Every ordinary human message and every persona message emitted through a
webhook gets one row. Writes are fire-and-forget: a failing insert is logged
and never interrupts message handling.
"""

from __future__ import annotations

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from scriptorium.database import message_stats
from scriptorium.logging import get_logger
from scriptorium.models import MessageRecord, model_to_dict

log = get_logger("audit")


class MessageAudit:
    """Writes message records to the message_stats table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def record_message(
        self,
        author_id: str,
        server_id: str,
        channel_id: str,
        message_id: str,
        is_persona: bool = False,
        persona_name: str | None = None,
    ) -> None:
        """Record one emitted message.

        Duplicate message IDs are ignored.

        Args:
            author_id: Human author (the persona owner for persona messages).
            server_id: Discord server ID.
            channel_id: Channel the message was emitted in.
            message_id: ID of the emitted message.
            is_persona: True when the message was sent through a persona webhook.
            persona_name: Persona display name, for persona messages.
        """
        record = MessageRecord(
            author_id=author_id,
            server_id=server_id,
            channel_id=channel_id,
            message_id=message_id,
            is_persona=is_persona,
            persona_name=persona_name,
        )

        try:
            with self.engine.connect() as conn:
                stmt = sqlite_insert(message_stats).values(**model_to_dict(record))
                stmt = stmt.on_conflict_do_nothing(index_elements=["message_id"])
                conn.execute(stmt)
                conn.commit()
        except SQLAlchemyError as e:
            log.warning(
                "message_record_failed",
                message_id=message_id,
                error=str(e),
            )
            return

        log.debug(
            "message_recorded",
            message_id=message_id,
            is_persona=is_persona,
        )
