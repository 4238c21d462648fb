"""Long-term memory store backed by SQLite full-text search.

Facts live in a ``memories`` table; ``searchable_text`` is mirrored into an
FTS5 index with the ``unicode61`` tokenizer, which splits on Unicode word
boundaries without stemming so Portuguese and English text index the same
way. Search ranks with ``bm25()``; when the ranked query yields nothing
(punctuation-only or very short queries, tokens the index never saw as
words) it falls back to a case-insensitive substring scan ordered by
recency.

SQLite calls are blocking, so each operation runs in the default executor
under an asyncio.Lock that serializes access to the single connection.

Example:
    >>> store = LongTermMemoryStore("data/memory.db")
    >>> memory = await store.save("User prefers TypeScript over PHP", category="preference")
    >>> [m.content for m in await store.search("typescript", limit=5)]
    ['User prefers TypeScript over PHP']
"""

from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TypeVar, Union

from parley.core.exceptions import MemoryStoreError
from parley.memory.schemas import Memory, MemoryCategory, MemorySource

logger = logging.getLogger(__name__)

T = TypeVar("T")

IN_MEMORY = ":memory:"

_TOKEN = re.compile(r"\w+")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS memories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content TEXT NOT NULL,
    searchable_text TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'general',
    source TEXT,
    access_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_memories_category ON memories (category);
CREATE INDEX IF NOT EXISTS idx_memories_created_at ON memories (created_at);

CREATE VIRTUAL TABLE IF NOT EXISTS memories_fts USING fts5(
    searchable_text,
    content='memories',
    content_rowid='id',
    tokenize='unicode61 remove_diacritics 0'
);

CREATE TRIGGER IF NOT EXISTS memories_ai AFTER INSERT ON memories BEGIN
    INSERT INTO memories_fts (rowid, searchable_text) VALUES (new.id, new.searchable_text);
END;

CREATE TRIGGER IF NOT EXISTS memories_ad AFTER DELETE ON memories BEGIN
    INSERT INTO memories_fts (memories_fts, rowid, searchable_text)
    VALUES ('delete', old.id, old.searchable_text);
END;

CREATE TRIGGER IF NOT EXISTS memories_au AFTER UPDATE OF searchable_text ON memories BEGIN
    INSERT INTO memories_fts (memories_fts, rowid, searchable_text)
    VALUES ('delete', old.id, old.searchable_text);
    INSERT INTO memories_fts (rowid, searchable_text) VALUES (new.id, new.searchable_text);
END;
"""


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if value is not None else None


def build_match_query(query: str) -> Optional[str]:
    """Turn free text into an FTS5 query matching any of its words.

    Each token is quoted so FTS5 operators in user text are taken literally.
    Returns None when the text has no word characters.
    """
    tokens = _TOKEN.findall(query.casefold())
    if not tokens:
        return None
    unique = list(dict.fromkeys(tokens))
    return " OR ".join(f'"{token}"' for token in unique)


class LongTermMemoryStore:
    """Persistent, searchable store of atomic facts.

    Memories are only ever inserted and have their access counts bumped;
    this store never deletes them.

    Attributes:
        database_path: SQLite file, or ``":memory:"``.
    """

    def __init__(self, database_path: Union[str, Path] = IN_MEMORY) -> None:
        self.database_path = str(database_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = asyncio.Lock()

    # =========================================================================
    # Connection management
    # =========================================================================

    def _connect(self) -> sqlite3.Connection:
        if self.database_path != IN_MEMORY:
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.database_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        if self.database_path != IN_MEMORY:
            try:
                conn.execute("PRAGMA journal_mode = WAL")
            except sqlite3.OperationalError as exc:
                logger.warning("WAL mode unavailable, continuing without it: %s", exc)
        conn.executescript(_SCHEMA)
        conn.commit()
        return conn

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = self._connect()
        return self._conn

    async def _run(self, operation: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        async with self._lock:
            loop = asyncio.get_running_loop()
            try:
                return await loop.run_in_executor(None, lambda: fn(self._connection()))
            except sqlite3.Error as exc:
                raise MemoryStoreError(
                    f"Memory store {operation} failed: {exc}", operation=operation
                ) from exc

    async def initialize(self) -> None:
        """Open the database and create the schema if needed."""
        await self._run("initialize", lambda conn: None)

    async def close(self) -> None:
        async with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # =========================================================================
    # Operations
    # =========================================================================

    async def save(
        self,
        content: str,
        searchable_text: Optional[str] = None,
        category: "MemoryCategory | str | None" = None,
        source: "MemorySource | str | None" = None,
    ) -> Memory:
        """Insert a fact and return it with its assigned id.

        Args:
            content: The fact sentence.
            searchable_text: Text to index; defaults to ``content``.
            category: Kind of fact; legacy names are accepted.
            source: Channel the fact came from.

        Raises:
            ValueError: If ``content`` is blank.
            MemoryStoreError: If the insert fails.
        """
        if not content or not content.strip():
            raise ValueError("Memory content cannot be empty")

        resolved_category = MemoryCategory.parse(category)
        resolved_source = MemorySource(source) if source is not None else None
        text = searchable_text if searchable_text and searchable_text.strip() else content
        created_at = datetime.now(timezone.utc)

        def insert(conn: sqlite3.Connection) -> int:
            cursor = conn.execute(
                "INSERT INTO memories (content, searchable_text, category, source, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    content,
                    text,
                    resolved_category.value,
                    resolved_source.value if resolved_source else None,
                    created_at.isoformat(),
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

        memory_id = await self._run("save", insert)
        return Memory(
            id=memory_id,
            content=content,
            searchable_text=text,
            category=resolved_category,
            source=resolved_source,
            access_count=0,
            created_at=created_at,
        )

    async def search(self, query: str, limit: int = 10) -> list[Memory]:
        """Return up to ``limit`` memories relevant to ``query``.

        Ranked full-text matches come first; if there are none, memories
        whose searchable text contains the trimmed query (case-insensitive)
        are returned newest first.
        """
        trimmed = query.strip()
        if not trimmed or limit <= 0:
            return []

        match = build_match_query(trimmed)

        def ranked(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            if match is None:
                return []
            try:
                return conn.execute(
                    "SELECT m.* FROM memories_fts "
                    "JOIN memories m ON m.id = memories_fts.rowid "
                    "WHERE memories_fts MATCH ? "
                    "ORDER BY bm25(memories_fts), m.created_at DESC, m.id DESC "
                    "LIMIT ?",
                    (match, limit),
                ).fetchall()
            except sqlite3.OperationalError as exc:
                logger.debug("Full-text query rejected, using substring scan: %s", exc)
                return []

        def substring(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(
                "SELECT * FROM memories "
                "WHERE instr(casefold(searchable_text), ?) > 0 "
                "ORDER BY created_at DESC, id DESC "
                "LIMIT ?",
                (trimmed.casefold(), limit),
            ).fetchall()

        rows = await self._run("search", ranked)
        if not rows:
            rows = await self._run("search", substring)
        return [self._to_memory(row) for row in rows]

    async def increment_access(self, memory_ids: Iterable[int]) -> None:
        """Add one to the access count of each memory in ``memory_ids``."""
        ids = list(dict.fromkeys(memory_ids))
        if not ids:
            return
        placeholders = ", ".join("?" for _ in ids)

        def update(conn: sqlite3.Connection) -> None:
            conn.execute(
                f"UPDATE memories SET access_count = access_count + 1 WHERE id IN ({placeholders})",
                ids,
            )
            conn.commit()

        await self._run("increment_access", update)

    async def count(self) -> int:
        def total(conn: sqlite3.Connection) -> int:
            return int(conn.execute("SELECT COUNT(*) FROM memories").fetchone()[0])

        return await self._run("count", total)

    async def get(self, memory_id: int) -> Optional[Memory]:
        def fetch(conn: sqlite3.Connection) -> Optional[sqlite3.Row]:
            return conn.execute("SELECT * FROM memories WHERE id = ?", (memory_id,)).fetchone()

        row = await self._run("get", fetch)
        return self._to_memory(row) if row is not None else None

    async def find_by_category(
        self, category: "MemoryCategory | str", limit: int = 20
    ) -> list[Memory]:
        """Newest memories of one category."""
        resolved = MemoryCategory.parse(category)

        def fetch(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(
                "SELECT * FROM memories WHERE category = ? ORDER BY created_at DESC, id DESC LIMIT ?",
                (resolved.value, limit),
            ).fetchall()

        return [self._to_memory(row) for row in await self._run("find_by_category", fetch)]

    async def top_accessed(self, limit: int = 10) -> list[Memory]:
        """Most frequently surfaced memories, ties broken by recency."""

        def fetch(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(
                "SELECT * FROM memories ORDER BY access_count DESC, created_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()

        return [self._to_memory(row) for row in await self._run("top_accessed", fetch)]

    @staticmethod
    def _to_memory(row: sqlite3.Row) -> Memory:
        data: dict[str, Any] = dict(row)
        if data.get("source"):
            try:
                data["source"] = MemorySource(data["source"])
            except ValueError:
                data["source"] = None
        return Memory(**data)


__all__ = ["LongTermMemoryStore", "build_match_query", "IN_MEMORY"]
