"""
Agent loop - drives one conversational turn.

Each iteration:
1. Snapshots the conversation and sends it to the chat API
2. Replays returned text to the observer line by line
3. Appends the assistant message verbatim
4. Stops if the model requested no tools
5. Runs each requested tool in order, one at a time
6. Appends all tool results as one user message
7. Appends any input the user queued meanwhile, then repeats

The API requires the tool-result message to directly follow the assistant
message that requested the tools, so queued user input always goes after it.
"""

from typing import Any, Dict, List, Optional

import structlog

from mash.core.exceptions import MashException
from mash.core.llm.base import (
    LLMProvider,
    Message,
    MessageRole,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from mash.tools.executor import ToolExecutor

from .conversation import Conversation, PendingInput
from .events import EventChannel, TextEvent, ToolCallEvent, ToolResultEvent

logger = structlog.get_logger(__name__)

EMPTY_PREVIEW = "(empty)"


def tool_call_description(arguments: Dict[str, Any]) -> str:
    command = arguments.get("command")
    return command if isinstance(command, str) else ""


def result_preview(content: str) -> str:
    """First line of a tool result, or ``(empty)``."""
    lines = content.splitlines()
    return lines[0] if lines else EMPTY_PREVIEW


class AgentLoop:
    """Runs turns against a provider, executing tools until the model is done."""

    def __init__(
        self,
        provider: LLMProvider,
        executor: ToolExecutor,
        conversation: Conversation,
        events: EventChannel,
        pending: Optional[PendingInput] = None
    ) -> None:
        """Initialize the loop.

        Args:
            provider: Chat API transport
            executor: Resolves and runs tool uses
            conversation: Shared message history
            events: Observer channel
            pending: Queue of user input submitted while a turn runs
        """
        self.provider = provider
        self.executor = executor
        self.conversation = conversation
        self.events = events
        self.pending = pending if pending is not None else PendingInput()

    async def run_turn(self) -> int:
        """Run until the model answers without requesting tools.

        Returns:
            Number of chat API round trips made

        Raises:
            TransportError: If any request fails. Messages appended by earlier
                iterations are kept.
        """
        round_trips = 0
        while True:
            snapshot = await self.conversation.snapshot()
            turn = await self.provider.send(snapshot, self.executor.definitions())
            round_trips += 1

            tool_uses: List[ToolUseBlock] = []
            for block in turn.content:
                if isinstance(block, TextBlock):
                    for line in block.text.splitlines():
                        self.events.emit(TextEvent(text=line))
                elif isinstance(block, ToolUseBlock):
                    self.events.emit(ToolCallEvent(name=block.name, description=tool_call_description(block.input)))
                    tool_uses.append(block)

            await self.conversation.append(Message(role=MessageRole.ASSISTANT, content=list(turn.content)))

            if not tool_uses:
                logger.debug("Turn complete", round_trips=round_trips, stop_reason=turn.stop_reason)
                return round_trips

            results = [await self._run_tool(tool_use) for tool_use in tool_uses]
            await self.conversation.append(Message(role=MessageRole.USER, content=results))

            queued = await self.pending.drain()
            if queued:
                await self.conversation.append(Message.user_text("\n\n".join(queued)))

    async def _run_tool(self, tool_use: ToolUseBlock) -> ToolResultBlock:
        """Execute one tool use; failures become an error result."""
        is_error: Optional[bool] = None
        try:
            content = await self.executor.execute(tool_use.name, tool_use.input)
        except MashException as e:
            logger.warning("Tool call failed", tool=tool_use.name, error=str(e))
            content = str(e)
            is_error = True

        self.events.emit(ToolResultEvent(preview=result_preview(content), is_error=bool(is_error)))
        return ToolResultBlock(tool_use_id=tool_use.id, content=content, is_error=is_error)
