"""
Base LLM provider interface and conversation data models.

Messages and content blocks mirror the remote chat API's wire format so a
conversation can be sent back verbatim. Content blocks are a tagged union
discriminated on ``type``; message content is either plain text or a list
of blocks.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Message roles in a conversation."""
    USER = "user"
    ASSISTANT = "assistant"


class TextBlock(BaseModel):
    """Plain text produced by the model or the user."""
    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """A model request to run a tool."""
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """The outcome of a tool use, tagged with the originating id."""
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: Optional[bool] = None


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


class Message(BaseModel):
    """Represents a message in the conversation."""
    role: MessageRole
    content: Union[str, List[ContentBlock]]

    @classmethod
    def user_text(cls, text: str) -> "Message":
        return cls(role=MessageRole.USER, content=text)

    def tool_use_ids(self) -> List[str]:
        """Ids of the tool uses this message requests, in order."""
        if isinstance(self.content, str):
            return []
        return [block.id for block in self.content if isinstance(block, ToolUseBlock)]

    def is_tool_result_message(self) -> bool:
        """True when the content consists only of tool results."""
        return (
            not isinstance(self.content, str)
            and len(self.content) > 0
            and all(isinstance(block, ToolResultBlock) for block in self.content)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire format, dropping unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class ToolDefinition(BaseModel):
    """A tool offered to the model."""
    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class AssistantTurn(BaseModel):
    """Decoded response of one chat API round trip."""
    content: List[ContentBlock] = Field(default_factory=list)
    stop_reason: Optional[str] = None

    def tool_uses(self) -> List[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]


class LLMProvider(ABC):
    """Abstract base class for chat API transports.

    The agent loop only depends on this interface, so tests and alternative
    backends can stand in for the remote API.
    """

    @abstractmethod
    async def send(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition]
    ) -> AssistantTurn:
        """Send the conversation and tool catalog, return the model's turn.

        Args:
            messages: Full conversation so far
            tools: Tool catalog offered to the model

        Returns:
            AssistantTurn with the returned content blocks

        Raises:
            TransportError: On any network, HTTP or decode failure
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None
