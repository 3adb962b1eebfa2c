"""
Agent session wiring.

An :class:`AgentSession` is what a front end talks to: it submits user
input, queues input that arrives while a turn is running, clears the
conversation on request, and exposes the event channel to observe.
:func:`start_session` builds a fully wired session from settings.
"""

import asyncio
from pathlib import Path
from typing import List, Optional

import structlog

from mash.api.facade import FacadeServer
from mash.config.settings import ApiConfig, Settings
from mash.core.external_mcp.external_mcp_models import ConnectResult
from mash.core.external_mcp.registry import ExternalMCPRegistry
from mash.core.llm.anthropic_provider import AnthropicProvider
from mash.core.llm.base import LLMProvider, Message
from mash.core.tasks import TaskFileWatcher, init_task_file
from mash.tools.executor import ToolExecutor

from .conversation import Conversation, PendingInput
from .events import EventChannel
from .loop import AgentLoop
from .prompts import build_system_prompt

logger = structlog.get_logger(__name__)


class AgentSession:
    """Front-end facing handle on one conversation."""

    def __init__(
        self,
        provider: LLMProvider,
        registry: ExternalMCPRegistry,
        events: Optional[EventChannel] = None
    ) -> None:
        self.provider = provider
        self.registry = registry
        self.events = events if events is not None else EventChannel()
        self.conversation = Conversation()
        self.pending = PendingInput()
        self.loop = AgentLoop(provider, ToolExecutor(registry), self.conversation, self.events, self.pending)
        self.facade: Optional[FacadeServer] = None
        self.task_watcher: Optional[TaskFileWatcher] = None
        self.task_file: Optional[Path] = None
        self.connect_results: List[ConnectResult] = []
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def submit(self, text: str) -> Optional[int]:
        """Send user input.

        If a turn is already running the input is queued and delivered after
        the next batch of tool results.

        Returns:
            Round trips made by the turn this call ran, or None if queued

        Raises:
            TransportError: If the turn's chat API request fails
        """
        if self._busy:
            await self.pending.push(text)
            logger.debug("Queued user input while busy", queued=len(self.pending))
            return None

        self._busy = True
        try:
            await self.conversation.append(Message.user_text(text))
            return await self.loop.run_turn()
        finally:
            self._busy = False

    async def new_conversation(self) -> None:
        await self.conversation.clear()

    async def close(self) -> None:
        """Stop the facade and watcher and terminate every MCP server."""
        if self.task_watcher is not None:
            self.task_watcher.stop()
        if self.facade is not None:
            await self.facade.stop()
        await self.registry.close_all()
        await self.provider.close()


async def start_session(settings: Settings) -> AgentSession:
    """Connect MCP servers, start the facade and build a session.

    Server connection failures are recorded in ``connect_results`` rather
    than raised.

    Raises:
        ConfigurationError: If the API configuration is incomplete
    """
    api_config = ApiConfig.load(settings)
    registry = ExternalMCPRegistry(settings.load_mcp_configs())
    connect_results = await registry.connect_all()

    facade = FacadeServer(registry, host=settings.mcp_http_host, port=settings.mcp_http_port)
    try:
        await facade.start()
    except OSError:
        await registry.close_all()
        raise

    task_file = await asyncio.to_thread(init_task_file, settings.home_dir)
    system_prompt = build_system_prompt(registry, facade.base_url, task_file)

    provider = AnthropicProvider(
        api_key=api_config.api_key,
        model=api_config.model,
        system=system_prompt,
        base_url=api_config.base_url,
        max_tokens=api_config.max_tokens,
        timeout=settings.llm_timeout,
    )

    session = AgentSession(provider, registry)
    session.facade = facade
    session.task_file = task_file
    session.connect_results = connect_results
    session.task_watcher = TaskFileWatcher(task_file, session.events)
    session.task_watcher.start()
    return session
