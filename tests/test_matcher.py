"""Tests for persona prefix matching."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from scriptorium.matcher import PersonaMatcher, match_persona
from scriptorium.models import Persona


def make_persona(name: str, prefix: str, owner_id: str = "user1") -> Persona:
    return Persona(owner_id=owner_id, server_id="server1", name=name, prefix=prefix)


class TestMatchPersona:
    """Tests for the pure prefix match."""

    def test_prefix_match(self) -> None:
        alice = make_persona("Alice", "a:")
        assert match_persona([alice], "a: Hello there") is alice

    def test_exact_prefix_matches(self) -> None:
        """Text equal to the prefix still matches; emptiness is the dispatcher's call."""
        alice = make_persona("Alice", "a:")
        assert match_persona([alice], "a:") is alice

    def test_no_match(self) -> None:
        alice = make_persona("Alice", "a:")
        assert match_persona([alice], "Hello a: there") is None

    def test_case_sensitive(self) -> None:
        alice = make_persona("Alice", "A:")
        assert match_persona([alice], "a: hi") is None

    def test_no_trimming_of_text(self) -> None:
        alice = make_persona("Alice", "a:")
        assert match_persona([alice], " a: hi") is None

    def test_prefix_whitespace_significant(self) -> None:
        spaced = make_persona("Spaced", "a: ")
        assert match_persona([spaced], "a:hi") is None
        assert match_persona([spaced], "a: hi") is spaced

    def test_regex_characters_literal(self) -> None:
        dotted = make_persona("Dots", ".*")
        assert match_persona([dotted], "anything") is None
        assert match_persona([dotted], ".* hi") is dotted

    def test_first_in_order_wins(self) -> None:
        """Overlapping prefixes resolve to the first candidate."""
        newer = make_persona("Newer", "a")
        older = make_persona("Older", "a:")
        assert match_persona([newer, older], "a: hi") is newer
        assert match_persona([older, newer], "a: hi") is older

    def test_empty_candidates(self) -> None:
        assert match_persona([], "a: hi") is None


class TestPersonaMatcher:
    @pytest.mark.asyncio
    async def test_queries_author_personas(self) -> None:
        alice = make_persona("Alice", "a:")
        store = MagicMock()
        store.list_for_owner = AsyncMock(return_value=[alice])
        matcher = PersonaMatcher(store)

        result = await matcher.match("user1", "server1", "a: hi")

        assert result is alice
        store.list_for_owner.assert_awaited_once_with("user1", "server1")

    @pytest.mark.asyncio
    async def test_empty_content_skips_lookup(self) -> None:
        store = MagicMock()
        store.list_for_owner = AsyncMock(return_value=[])
        matcher = PersonaMatcher(store)

        assert await matcher.match("user1", "server1", "") is None
        store.list_for_owner.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_with_real_store(self, engine) -> None:
        """The most recently created persona wins among identical prefixes."""
        from scriptorium.personas import PersonaStore

        store = PersonaStore(engine)
        await store.create("user1", "server1", "Old", "x:")
        await store.create("user1", "server1", "New", "x:")
        await store.create("user2", "server1", "Other", "x:")

        result = await PersonaMatcher(store).match("user1", "server1", "x: hello")

        assert result is not None
        assert result.name == "New"
