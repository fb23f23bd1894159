"""Database schema and connection management for Scriptorium.

Uses SQLAlchemy Core (not ORM) for explicit SQL control.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    text,
)
from sqlalchemy.engine import Engine

from scriptorium.config import Config

# Shared metadata for all tables
metadata = MetaData()


# =============================================================================
# Personas
# =============================================================================

personas = Table(
    "personas",
    metadata,
    Column("id", String, primary_key=True),  # ULID
    Column("owner_id", String, nullable=False),  # Discord snowflake
    Column("server_id", String, nullable=False),  # Discord snowflake
    Column("name", String(80), nullable=False),
    Column("prefix", String(50), nullable=False),
    Column("avatar_url", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, default=datetime.utcnow),
    Column("updated_at", DateTime, nullable=False, default=datetime.utcnow),
    Index("ix_personas_owner_server_name", "owner_id", "server_id", "name", unique=True),
    Index("ix_personas_owner_server", "owner_id", "server_id"),
    Index("ix_personas_prefix", "prefix"),
)


# =============================================================================
# Message Audit
# =============================================================================

message_stats = Table(
    "message_stats",
    metadata,
    Column("id", String, primary_key=True),  # ULID
    Column("author_id", String, nullable=False),  # Human author, also for persona messages
    Column("server_id", String, nullable=False),
    Column("channel_id", String, nullable=False),
    Column("message_id", String, nullable=False),  # Emitted message snowflake
    Column("is_persona", Boolean, nullable=False, default=False),
    Column("persona_name", String(80), nullable=True),
    Column("recorded_at", DateTime, nullable=False, default=datetime.utcnow),
    Index("ix_message_stats_message", "message_id", unique=True),
    Index("ix_message_stats_server_recorded", "server_id", "recorded_at"),
    Index("ix_message_stats_channel_recorded", "channel_id", "recorded_at"),
)


# =============================================================================
# Schema Version (for migrations)
# =============================================================================

schema_version = Table(
    "_schema_version",
    metadata,
    Column("version", Integer, primary_key=True),
    Column("applied_at", DateTime, nullable=False),
    Column("description", String, nullable=True),
)


# =============================================================================
# Helper Functions
# =============================================================================


def get_engine(config: Config) -> Engine:
    """Create SQLAlchemy engine from config.

    Args:
        config: Application configuration.

    Returns:
        SQLAlchemy Engine instance.
    """
    db_path = config.database_path

    # Ensure data directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=config.log_level == "DEBUG",
    )

    # Enable WAL mode for better concurrency
    with engine.connect() as conn:
        conn.execute(text("PRAGMA journal_mode=WAL"))
        conn.execute(text("PRAGMA foreign_keys=ON"))
        conn.commit()

    return engine


def create_tables(engine: Engine) -> None:
    """Create all tables in the database.

    Args:
        engine: SQLAlchemy Engine instance.
    """
    metadata.create_all(engine)
