"""Tests for the database module.

Covers table creation, unique constraints and the engine pragmas.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import inspect, select, text
from sqlalchemy.exc import IntegrityError

from scriptorium.database import message_stats, metadata, personas
from scriptorium.models import generate_id


@pytest.fixture
def now():
    """Return current time in UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


def insert_persona(engine, now, owner_id="user1", server_id="server1", name="Alice", prefix="a:"):
    with engine.connect() as conn:
        conn.execute(
            personas.insert().values(
                id=generate_id(),
                owner_id=owner_id,
                server_id=server_id,
                name=name,
                prefix=prefix,
                created_at=now,
                updated_at=now,
            )
        )
        conn.commit()


class TestSchema:
    """Tests for table and index creation."""

    def test_all_tables_created(self, engine) -> None:
        table_names = set(inspect(engine).get_table_names())
        assert {"personas", "message_stats", "_schema_version"} <= table_names

    def test_metadata_tables(self) -> None:
        assert set(metadata.tables) == {"personas", "message_stats", "_schema_version"}

    def test_persona_indexes(self, engine) -> None:
        indexes = {ix["name"]: ix for ix in inspect(engine).get_indexes("personas")}
        assert indexes["ix_personas_owner_server_name"]["unique"]
        assert "ix_personas_owner_server" in indexes
        assert "ix_personas_prefix" in indexes

    def test_message_stats_indexes(self, engine) -> None:
        indexes = {ix["name"]: ix for ix in inspect(engine).get_indexes("message_stats")}
        assert indexes["ix_message_stats_message"]["unique"]
        assert "ix_message_stats_server_recorded" in indexes

    def test_wal_mode_enabled(self, engine) -> None:
        with engine.connect() as conn:
            mode = conn.execute(text("PRAGMA journal_mode")).scalar()
        assert mode == "wal"


class TestPersonasTable:
    """Tests for persona uniqueness rules."""

    def test_same_name_same_owner_rejected(self, engine, now) -> None:
        insert_persona(engine, now)
        with pytest.raises(IntegrityError):
            insert_persona(engine, now, prefix="b:")

    def test_same_name_other_owner_allowed(self, engine, now) -> None:
        insert_persona(engine, now)
        insert_persona(engine, now, owner_id="user2")

        with engine.connect() as conn:
            rows = conn.execute(select(personas).where(personas.c.name == "Alice")).fetchall()
        assert len(rows) == 2

    def test_same_name_other_server_allowed(self, engine, now) -> None:
        insert_persona(engine, now)
        insert_persona(engine, now, server_id="server2")

    def test_duplicate_prefix_allowed(self, engine, now) -> None:
        """Prefixes are not unique, even for one owner."""
        insert_persona(engine, now, name="Alice")
        insert_persona(engine, now, name="Alicia")


class TestMessageStatsTable:
    def test_duplicate_message_id_rejected(self, engine, now) -> None:
        values = {
            "author_id": "user1",
            "server_id": "server1",
            "channel_id": "chan1",
            "message_id": "msg1",
            "is_persona": False,
            "recorded_at": now,
        }
        with engine.connect() as conn:
            conn.execute(message_stats.insert().values(id=generate_id(), **values))
            conn.commit()
            with pytest.raises(IntegrityError):
                conn.execute(message_stats.insert().values(id=generate_id(), **values))
