"""Persona storage for Scriptorium.

Personas are owned by a user within a server and identified by
(owner_id, server_id, name). Prefixes are not unique: lookups that match on
prefix or on name alone take the first row in a fixed order and never report
the ambiguity.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from scriptorium.database import personas
from scriptorium.logging import get_logger
from scriptorium.models import Persona, model_to_dict, row_to_model, utcnow

log = get_logger("personas")

# Marks an update argument that was not supplied (None clears the avatar)
_UNSET: Any = object()


class PersonaError(Exception):
    """Base error for persona management."""


class PersonaExistsError(PersonaError):
    """Raised when an owner already has a persona with the same name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"A persona named {name!r} already exists")
        self.name = name


class PersonaNotFoundError(PersonaError):
    """Raised when updating or deleting a persona that doesn't exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No persona named {name!r}")
        self.name = name


class PersonaStore:
    """Reads and writes personas in the database.

    Methods are async so callers on the event loop treat the store as an
    external collaborator, even though SQLite access is synchronous.
    """

    def __init__(self, engine: Engine) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy database engine.
        """
        self.engine = engine

    async def list_for_owner(self, owner_id: str, server_id: str) -> list[Persona]:
        """List an owner's personas in a server, most recently created first.

        Personas created in the same instant fall back to ID order, which
        follows creation order.

        Args:
            owner_id: Discord user ID of the owner.
            server_id: Discord server ID.

        Returns:
            Personas in match order.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                select(personas)
                .where(personas.c.owner_id == owner_id)
                .where(personas.c.server_id == server_id)
                .order_by(personas.c.created_at.desc(), personas.c.id.desc())
            )
            return [row_to_model(row, Persona) for row in result]

    async def find_by_name(self, server_id: str, name: str) -> Persona | None:
        """Find any owner's persona by name within a server.

        Names are only unique per owner, so the earliest-created persona with
        this name wins.

        Args:
            server_id: Discord server ID.
            name: Persona name (exact match).

        Returns:
            The first matching persona, or None.
        """
        with self.engine.connect() as conn:
            row = conn.execute(
                select(personas)
                .where(personas.c.server_id == server_id)
                .where(personas.c.name == name)
                .order_by(personas.c.created_at.asc(), personas.c.id.asc())
                .limit(1)
            ).first()
        return row_to_model(row, Persona) if row else None

    async def get(self, owner_id: str, server_id: str, name: str) -> Persona | None:
        """Get one owner's persona by name."""
        with self.engine.connect() as conn:
            row = conn.execute(
                select(personas)
                .where(personas.c.owner_id == owner_id)
                .where(personas.c.server_id == server_id)
                .where(personas.c.name == name)
            ).first()
        return row_to_model(row, Persona) if row else None

    async def count_for_owner(self, owner_id: str, server_id: str) -> int:
        """Count an owner's personas in a server."""
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count())
                .select_from(personas)
                .where(personas.c.owner_id == owner_id)
                .where(personas.c.server_id == server_id)
            )
            return int(result.scalar() or 0)

    async def create(
        self,
        owner_id: str,
        server_id: str,
        name: str,
        prefix: str,
        avatar_url: str | None = None,
    ) -> Persona:
        """Create a persona.

        Args:
            owner_id: Discord user ID of the owner.
            server_id: Discord server ID.
            name: Display name used for proxied messages.
            prefix: Trigger prefix, compared as a raw substring.
            avatar_url: Optional avatar image URL.

        Returns:
            The stored persona.

        Raises:
            PersonaExistsError: If the owner already has a persona with this name.
            pydantic.ValidationError: If name or prefix is empty or too long.
                Names longer than 80 characters are rejected because Discord
                refuses them as webhook usernames.
        """
        persona = Persona(
            owner_id=owner_id,
            server_id=server_id,
            name=name,
            prefix=prefix,
            avatar_url=avatar_url,
        )

        try:
            with self.engine.connect() as conn:
                conn.execute(personas.insert().values(**model_to_dict(persona)))
                conn.commit()
        except IntegrityError as e:
            raise PersonaExistsError(persona.name) from e

        log.info(
            "persona_created",
            persona=persona.name,
            owner_id=owner_id,
            server_id=server_id,
        )
        return persona

    async def update(
        self,
        owner_id: str,
        server_id: str,
        name: str,
        prefix: str | None = None,
        avatar_url: str | None = _UNSET,
    ) -> Persona:
        """Update a persona's prefix and/or avatar.

        Args:
            owner_id: Discord user ID of the owner.
            server_id: Discord server ID.
            name: Name of the persona to update.
            prefix: New prefix; empty or None leaves it unchanged.
            avatar_url: New avatar URL; pass None to clear it, omit to keep it.

        Returns:
            The updated persona.

        Raises:
            PersonaNotFoundError: If the persona doesn't exist.
        """
        values: dict[str, Any] = {"updated_at": utcnow()}
        if prefix:
            if len(prefix) > 50:
                raise ValueError("prefix must be at most 50 characters")
            values["prefix"] = prefix
        if avatar_url is not _UNSET:
            values["avatar_url"] = avatar_url

        with self.engine.connect() as conn:
            result = conn.execute(
                personas.update()
                .where(personas.c.owner_id == owner_id)
                .where(personas.c.server_id == server_id)
                .where(personas.c.name == name)
                .values(**values)
            )
            conn.commit()

        if result.rowcount == 0:
            raise PersonaNotFoundError(name)

        updated = await self.get(owner_id, server_id, name)
        if updated is None:
            # Deleted between the update and the read
            raise PersonaNotFoundError(name)
        log.info(
            "persona_updated",
            persona=name,
            owner_id=owner_id,
            fields=sorted(k for k in values if k != "updated_at"),
        )
        return updated

    async def delete(self, owner_id: str, server_id: str, name: str) -> Persona:
        """Delete a persona.

        Returns:
            The removed persona.

        Raises:
            PersonaNotFoundError: If the persona doesn't exist.
        """
        existing = await self.get(owner_id, server_id, name)
        if existing is None:
            raise PersonaNotFoundError(name)

        with self.engine.connect() as conn:
            conn.execute(personas.delete().where(personas.c.id == existing.id))
            conn.commit()

        log.info("persona_deleted", persona=name, owner_id=owner_id, server_id=server_id)
        return existing
