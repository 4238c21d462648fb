"""Short-term conversational memory.

A bounded FIFO of recent turns per conversation, kept in process memory
only. It is a cache of working context: a restart loses it.

Concurrent ``respond()`` calls for one conversation would interleave their
turns. ``lock(conversation_id)`` returns a per-conversation asyncio.Lock the
orchestrator holds across read-dispatch-append so each exchange lands as a
contiguous user/assistant pair.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ShortTermTurn:
    """One message in a conversation."""

    role: TurnRole
    content: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NO_HISTORY = "(no previous messages in this conversation)"
"""Rendered in place of the transcript when a conversation is empty."""


class ShortTermMemory:
    """Per-conversation ring buffer of the last ``max_turns`` turns.

    Example:
        >>> memory = ShortTermMemory(max_turns=10)
        >>> memory.add_message("chat-1", TurnRole.USER, "oi")
        >>> memory.count("chat-1")
        1
    """

    def __init__(self, max_turns: int = 10) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.max_turns = max_turns
        self._conversations: dict[str, deque[ShortTermTurn]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def add_message(self, conversation_id: str, role: "TurnRole | str", content: str) -> ShortTermTurn:
        """Append a turn, evicting the oldest once the buffer is full."""
        turn = ShortTermTurn(role=TurnRole(role), content=content)
        turns = self._conversations.get(conversation_id)
        if turns is None:
            turns = deque(maxlen=self.max_turns)
            self._conversations[conversation_id] = turns
        turns.append(turn)
        return turn

    def get_messages(self, conversation_id: str) -> list[ShortTermTurn]:
        """Turns oldest first, as a copy."""
        return list(self._conversations.get(conversation_id, ()))

    def count(self, conversation_id: str) -> int:
        return len(self._conversations.get(conversation_id, ()))

    def clear(self, conversation_id: str) -> None:
        """Drop a conversation's turns, and its lock unless an exchange holds it."""
        self._conversations.pop(conversation_id, None)
        lock = self._locks.get(conversation_id)
        if lock is not None and not lock.locked():
            del self._locks[conversation_id]

    def format_context(self, conversation_id: str) -> str:
        """Render the buffer as a labeled transcript, or NO_HISTORY."""
        turns = self.get_messages(conversation_id)
        if not turns:
            return NO_HISTORY

        lines = [
            f"- {'User' if turn.role is TurnRole.USER else 'Agent'}: {turn.content}"
            for turn in turns
        ]
        header = f"Recent conversation (last {len(turns)} messages):"
        return "\n".join([header, *lines])

    def lock(self, conversation_id: str) -> asyncio.Lock:
        """The lock serializing exchanges for one conversation."""
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    @property
    def conversation_ids(self) -> list[str]:
        return list(self._conversations)


__all__ = ["ShortTermMemory", "ShortTermTurn", "TurnRole", "NO_HISTORY"]
