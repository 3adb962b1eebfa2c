"""
Observer events emitted by the agent loop.

The presentation layer drains an :class:`EventChannel` at its own pace;
emitting never blocks the loop.
"""

import asyncio
from typing import List, Literal, Optional, Union

from pydantic import BaseModel


class TextEvent(BaseModel):
    """One line of assistant text."""
    kind: Literal["text"] = "text"
    text: str


class ToolCallEvent(BaseModel):
    """The model requested a tool."""
    kind: Literal["tool_call"] = "tool_call"
    name: str
    description: str = ""


class ToolResultEvent(BaseModel):
    """A tool finished; ``preview`` is the first line of its result."""
    kind: Literal["tool_result"] = "tool_result"
    preview: str
    is_error: bool = False


class TasksUpdatedEvent(BaseModel):
    """The task file changed."""
    kind: Literal["tasks_updated"] = "tasks_updated"
    done: int
    total: int


AgentEvent = Union[TextEvent, ToolCallEvent, ToolResultEvent, TasksUpdatedEvent]


class EventChannel:
    """Unbounded, non-blocking event queue between the core and an observer."""

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[AgentEvent]" = asyncio.Queue()

    def emit(self, event: AgentEvent) -> None:
        self._queue.put_nowait(event)

    async def get(self) -> AgentEvent:
        return await self._queue.get()

    def get_nowait(self) -> Optional[AgentEvent]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def drain(self) -> List[AgentEvent]:
        """Return every queued event without waiting."""
        events: List[AgentEvent] = []
        while True:
            event = self.get_nowait()
            if event is None:
                return events
            events.append(event)
