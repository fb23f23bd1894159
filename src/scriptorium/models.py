"""Pydantic models for Scriptorium entities.

These models bridge between the database (SQLAlchemy Core) and application code,
providing validation and serialization.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from ulid import ULID


# =============================================================================
# Helper Functions
# =============================================================================


# Webhook usernames are capped at 80 characters by Discord
MAX_NAME_LENGTH = 80

_last_id: ULID | None = None


def generate_id() -> str:
    """Generate a new ULID for entities.

    IDs are strictly increasing within the process, even when several are
    generated in the same millisecond, so they order rows created together.
    """
    global _last_id
    new_id = ULID()
    if _last_id is not None and int(new_id) <= int(_last_id):
        new_id = ULID.from_int(int(_last_id) + 1)
    _last_id = new_id
    return str(new_id)


def utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# Entity Models
# =============================================================================


class Persona(BaseModel):
    """A named alter-ego a user speaks as, triggered by a text prefix."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=generate_id)
    owner_id: str  # Discord user snowflake
    server_id: str  # Discord guild snowflake
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    prefix: str = Field(min_length=1, max_length=50)
    avatar_url: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Names are shown as webhook usernames, so surrounding spaces are dropped."""
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class MessageRecord(BaseModel):
    """Audit row for one emitted message, persona or ordinary."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=generate_id)
    author_id: str
    server_id: str
    channel_id: str
    message_id: str
    is_persona: bool = False
    persona_name: str | None = None
    recorded_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# Database Conversion
# =============================================================================


T = TypeVar("T", bound=BaseModel)


def row_to_model(row, model_class: type[T]) -> T:
    """Convert SQLAlchemy row to Pydantic model.

    Args:
        row: SQLAlchemy row result.
        model_class: Target Pydantic model class.

    Returns:
        Instance of the model class.
    """
    return model_class.model_validate(row._mapping)


def model_to_dict(model: BaseModel, exclude_none: bool = False) -> dict[str, Any]:
    """Convert Pydantic model to dict for database insert.

    Args:
        model: Pydantic model instance.
        exclude_none: If True, exclude None values.

    Returns:
        Dictionary representation.
    """
    return model.model_dump(exclude_none=exclude_none)
