"""Tests for the SQLite full-text long-term memory store."""

from __future__ import annotations

import sqlite3

import pytest
import pytest_asyncio

from parley.core.exceptions import MemoryStoreError
from parley.memory.schemas import Memory, MemoryCategory, MemorySource
from parley.memory.store import LongTermMemoryStore, build_match_query


@pytest_asyncio.fixture
async def store(tmp_path):
    """A file-backed store in a fresh temporary directory."""
    memory_store = LongTermMemoryStore(tmp_path / "nested" / "memory.db")
    await memory_store.initialize()
    yield memory_store
    await memory_store.close()


class TestBuildMatchQuery:
    """Tests for FTS query construction."""

    def test_tokens_are_quoted_and_ored(self):
        assert build_match_query("TypeScript generics") == '"typescript" OR "generics"'

    def test_operators_are_literal(self):
        """FTS syntax in user text never reaches the parser unquoted."""
        assert build_match_query('NOT "x" AND y*') == '"not" OR "x" OR "and" OR "y"'

    def test_duplicates_removed(self):
        assert build_match_query("php PHP php") == '"php"'

    def test_no_words(self):
        assert build_match_query("?!...") is None


class TestLongTermMemoryStore:
    """Tests for LongTermMemoryStore operations."""

    @pytest.mark.asyncio
    async def test_save_returns_memory(self, store):
        """save() assigns an id and defaults searchable text to content."""
        memory = await store.save("User Lucas loves TypeScript", category="preference", source="whatsapp")

        assert isinstance(memory, Memory)
        assert memory.id > 0
        assert memory.searchable_text == "User Lucas loves TypeScript"
        assert memory.category is MemoryCategory.PREFERENCE
        assert memory.source is MemorySource.WHATSAPP
        assert memory.access_count == 0

    @pytest.mark.asyncio
    async def test_blank_content_rejected(self, store):
        with pytest.raises(ValueError):
            await store.save("   ")

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, store, tmp_path):
        assert (tmp_path / "nested" / "memory.db").exists()

    @pytest.mark.asyncio
    async def test_ranked_search(self, store):
        """Full-text search returns only matching memories."""
        await store.save("User Lucas loves TypeScript")
        await store.save("User Ana prefers Python over Java")
        await store.save("TypeScript generics confuse Ana")

        results = await store.search("typescript", limit=5)

        contents = {memory.content for memory in results}
        assert contents == {"User Lucas loves TypeScript", "TypeScript generics confuse Ana"}

    @pytest.mark.asyncio
    async def test_search_matches_any_keyword(self, store):
        await store.save("User Lucas loves TypeScript")
        await store.save("User Ana prefers Python")

        results = await store.search("python typescript", limit=5)
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_search_respects_limit(self, store):
        for index in range(5):
            await store.save(f"Fact number {index} about coffee")

        assert len(await store.search("coffee", limit=3)) == 3

    @pytest.mark.asyncio
    async def test_substring_fallback(self, store):
        """A query that is not an indexed word falls back to substring match."""
        await store.save("User prefers TypeScript over PHP")

        results = await store.search("script", limit=5)

        assert [memory.content for memory in results] == ["User prefers TypeScript over PHP"]

    @pytest.mark.asyncio
    async def test_substring_fallback_is_case_insensitive_and_newest_first(self, store):
        first = await store.save("Likes JavaScript")
        second = await store.save("Hates JAVASCRIPT frameworks")

        results = await store.search("Script", limit=5)

        assert [memory.id for memory in results] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_search_non_latin_text(self, store):
        """Accented Portuguese words are indexed as words."""
        await store.save("Usuário prefere café sem açúcar")
        results = await store.search("café", limit=5)
        assert len(results) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   "])
    async def test_empty_query(self, store, query):
        await store.save("anything")
        assert await store.search(query) == []

    @pytest.mark.asyncio
    async def test_no_match(self, store):
        await store.save("User Lucas loves TypeScript")
        assert await store.search("kubernetes") == []

    @pytest.mark.asyncio
    async def test_increment_access(self, store):
        """Each listed memory gains exactly one access."""
        first = await store.save("one")
        second = await store.save("two")

        await store.increment_access([first.id, first.id, second.id])
        await store.increment_access([first.id])

        assert (await store.get(first.id)).access_count == 2
        assert (await store.get(second.id)).access_count == 1

    @pytest.mark.asyncio
    async def test_count_and_get(self, store):
        assert await store.count() == 0
        memory = await store.save("fact")
        assert await store.count() == 1
        assert (await store.get(memory.id)).content == "fact"
        assert await store.get(9999) is None

    @pytest.mark.asyncio
    async def test_find_by_category(self, store):
        await store.save("likes tea", category=MemoryCategory.PREFERENCE)
        await store.save("lives in Lisbon", category="fact")
        await store.save("likes jazz", category="user_preference")

        preferences = await store.find_by_category("preference")

        assert [memory.content for memory in preferences] == ["likes jazz", "likes tea"]

    @pytest.mark.asyncio
    async def test_top_accessed(self, store):
        quiet = await store.save("quiet fact")
        popular = await store.save("popular fact")
        await store.increment_access([popular.id])
        await store.increment_access([popular.id])
        await store.increment_access([quiet.id])

        top = await store.top_accessed(limit=1)
        assert [memory.id for memory in top] == [popular.id]

    @pytest.mark.asyncio
    async def test_legacy_category_rows(self, tmp_path):
        """Rows written with old category names load with the new names."""
        path = tmp_path / "legacy.db"
        store = LongTermMemoryStore(path)
        await store.initialize()
        await store.close()

        conn = sqlite3.connect(path)
        conn.execute(
            "INSERT INTO memories (content, searchable_text, category, created_at) "
            "VALUES ('old fact', 'old fact', 'learned_fact', '2025-01-01T00:00:00+00:00')"
        )
        conn.commit()
        conn.close()

        reopened = LongTermMemoryStore(path)
        memory = (await reopened.search("old"))[0]
        await reopened.close()

        assert memory.category is MemoryCategory.FACT

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "memory.db"
        first = LongTermMemoryStore(path)
        await first.save("durable fact")
        await first.close()

        second = LongTermMemoryStore(path)
        assert await second.count() == 1
        await second.close()

    @pytest.mark.asyncio
    async def test_sqlite_failure_becomes_store_error(self):
        """Driver errors surface as MemoryStoreError with the operation."""
        store = LongTermMemoryStore()
        await store.initialize()
        store._connection().close()

        with pytest.raises(MemoryStoreError) as exc_info:
            await store.count()
        assert exc_info.value.operation == "count"

    @pytest.mark.asyncio
    async def test_in_memory_store(self):
        store = LongTermMemoryStore()
        await store.save("ephemeral")
        assert await store.count() == 1
        await store.close()
