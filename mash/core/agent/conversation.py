"""
Shared conversation state.

The conversation is the single piece of mutable state shared between the
agent loop and the presentation layer. Every access goes through a short
critical section; callers must never hold the lock across I/O, which is
why :meth:`Conversation.snapshot` returns a copy.
"""

import asyncio
from typing import List

from mash.core.llm.base import Message


class Conversation:
    """Ordered, lock-guarded message history."""

    def __init__(self) -> None:
        self._messages: List[Message] = []
        self._lock = asyncio.Lock()

    async def append(self, message: Message) -> None:
        async with self._lock:
            self._messages.append(message)

    async def snapshot(self) -> List[Message]:
        """Copy of the history, safe to use after the lock is released."""
        async with self._lock:
            return list(self._messages)

    async def clear(self) -> None:
        """Start a new conversation."""
        async with self._lock:
            self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)


class PendingInput:
    """User input submitted while a turn is running."""

    def __init__(self) -> None:
        self._items: List[str] = []
        self._lock = asyncio.Lock()

    async def push(self, text: str) -> None:
        async with self._lock:
            self._items.append(text)

    async def drain(self) -> List[str]:
        """Remove and return everything queued, oldest first."""
        async with self._lock:
            items, self._items = self._items, []
            return items

    def __len__(self) -> int:
        return len(self._items)
