"""Initial schema - personas and the message audit log."""

from sqlalchemy import inspect

from scriptorium.database import create_tables

VERSION = 1
DESCRIPTION = "Initial schema with personas and message_stats"


def upgrade(engine):
    """Create all tables defined in the schema."""
    create_tables(engine)


def check(engine) -> bool:
    """Check if this migration has been applied."""
    table_names = set(inspect(engine).get_table_names())
    return {"personas", "message_stats"}.issubset(table_names)
