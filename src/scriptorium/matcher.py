"""Persona prefix matching.

A persona matches when its prefix is a literal, case-sensitive prefix of the
message text. Prefixes are compared as raw substrings: no trimming, no case
folding, no escaping.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from scriptorium.models import Persona

if TYPE_CHECKING:
    from scriptorium.personas import PersonaStore


def match_persona(candidates: Iterable[Persona], content: str) -> Persona | None:
    """Return the first persona whose prefix starts the content.

    Args:
        candidates: Personas in match order.
        content: Raw message text.

    Returns:
        The first matching persona, or None.
    """
    for persona in candidates:
        if persona.prefix and content.startswith(persona.prefix):
            return persona
    return None


class PersonaMatcher:
    """Looks up which of an author's personas a message invokes."""

    def __init__(self, store: PersonaStore) -> None:
        self.store = store

    async def match(self, author_id: str, server_id: str, content: str) -> Persona | None:
        """Match a message against its author's personas in the server.

        Args:
            author_id: Discord user ID of the message author.
            server_id: Discord server ID.
            content: Raw message text.

        Returns:
            The matched persona, or None.
        """
        if not content:
            return None
        candidates = await self.store.list_for_owner(author_id, server_id)
        return match_persona(candidates, content)
