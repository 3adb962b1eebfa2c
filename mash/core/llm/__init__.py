"""
Chat API transport and conversation data models.
"""

from .base import (
    AssistantTurn,
    ContentBlock,
    LLMProvider,
    Message,
    MessageRole,
    TextBlock,
    ToolDefinition,
    ToolResultBlock,
    ToolUseBlock,
)
from .anthropic_provider import AnthropicProvider

__all__ = [
    "AssistantTurn",
    "ContentBlock",
    "LLMProvider",
    "Message",
    "MessageRole",
    "TextBlock",
    "ToolDefinition",
    "ToolResultBlock",
    "ToolUseBlock",
    "AnthropicProvider",
]
