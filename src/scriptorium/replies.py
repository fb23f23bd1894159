"""Reply annotation for persona messages.

Webhook messages can't carry a native reply that pings the person behind a
persona. When a persona message replies to another persona message, the
proxied text is prefixed with an arrow and a mention of the replied-to
persona's owner instead.

Resolution is best-effort: a deleted message, a missing channel or an
unknown persona name simply yields no annotation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord

from scriptorium.logging import get_logger

if TYPE_CHECKING:
    from scriptorium.personas import PersonaStore

log = get_logger("replies")


class ReplyResolver:
    """Resolves the mention line for replies to persona messages."""

    def __init__(self, store: PersonaStore, arrow: str = "↩️") -> None:
        """Initialize the resolver.

        Args:
            store: Persona store used to map persona names to owners.
            arrow: Marker placed before the owner mention.
        """
        self.store = store
        self.arrow = arrow

    async def resolve(self, message: discord.Message) -> str | None:
        """Build the mention line for a reply, if it targets a persona message.

        Args:
            message: The triggering human message.

        Returns:
            "<arrow> <@owner_id>", or None when there is nothing to annotate.
        """
        reference = message.reference
        if reference is None or reference.message_id is None or message.guild is None:
            return None

        referenced = await self._fetch_referenced(message, reference)
        if referenced is None or referenced.webhook_id is None:
            return None

        persona_name = referenced.author.display_name
        persona = await self.store.find_by_name(str(message.guild.id), persona_name)
        if persona is None:
            log.debug("reply_persona_unknown", persona=persona_name)
            return None

        return f"{self.arrow} <@{persona.owner_id}>"

    async def _fetch_referenced(
        self, message: discord.Message, reference: discord.MessageReference
    ) -> discord.Message | None:
        """Get the replied-to message, preferring the copy the gateway sent."""
        if isinstance(reference.resolved, discord.Message):
            return reference.resolved
        if isinstance(reference.resolved, discord.DeletedReferencedMessage):
            return None

        try:
            return await message.channel.fetch_message(reference.message_id)
        except discord.HTTPException as e:
            log.debug(
                "reply_fetch_failed",
                message_id=reference.message_id,
                error=str(e),
            )
            return None
