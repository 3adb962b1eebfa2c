"""Agent loop, shared conversation state and observer events."""

from .conversation import Conversation, PendingInput
from .events import (
    AgentEvent,
    EventChannel,
    TasksUpdatedEvent,
    TextEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from .loop import AgentLoop

__all__ = [
    "AgentEvent",
    "AgentLoop",
    "Conversation",
    "EventChannel",
    "PendingInput",
    "TasksUpdatedEvent",
    "TextEvent",
    "ToolCallEvent",
    "ToolResultEvent",
]
