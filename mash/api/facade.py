"""
Local HTTP facade.

The shell tool runs in a separate process and cannot see the registry's
connections. This loopback endpoint lets it reach them with curl:
``POST /mcp/call`` with ``{server, tool, arguments}`` returns the tool's
text result, or a 500 carrying the error text.
"""

import asyncio
import contextlib
import socket
from typing import Iterator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from mash.core.external_mcp.external_mcp_models import MCPCallRequest
from mash.core.external_mcp.registry import ExternalMCPRegistry, namespaced_name
from mash.core.protocol.mcp_constants import DEFAULT_MCP_HOST, DEFAULT_MCP_HTTP_PORT, MCP_CALL_ENDPOINT
from mash.utils.logging import get_structured_logger

from .exception_handlers import register_exception_handlers

logger = get_structured_logger(__name__)


def create_facade_app(registry: ExternalMCPRegistry) -> FastAPI:
    """Build the facade application around a registry."""
    app = FastAPI(
        title="mash MCP facade",
        description="Routes loopback tool calls to connected MCP servers",
        docs_url=None,
        redoc_url=None,
    )
    app.state.registry = registry
    register_exception_handlers(app)

    @app.post(MCP_CALL_ENDPOINT, response_class=PlainTextResponse)
    async def mcp_call(body: MCPCallRequest, request: Request) -> str:
        """Call ``<server>/<tool>`` and return its text result."""
        full_name = namespaced_name(body.server, body.tool)
        logger.info("Routed MCP call", tool=full_name)
        return await request.app.state.registry.call_tool(full_name, body.arguments)

    @app.get("/health", include_in_schema=False)
    async def health():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the host process."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class FacadeServer:
    """Runs the facade as a background task on the current event loop."""

    def __init__(
        self,
        registry: ExternalMCPRegistry,
        host: str = DEFAULT_MCP_HOST,
        port: int = DEFAULT_MCP_HTTP_PORT
    ) -> None:
        self.host = host
        self.port = port
        self.app = create_facade_app(registry)
        self._server: Optional[_EmbeddedServer] = None
        self._task: Optional[asyncio.Task] = None
        self._socket: Optional[socket.socket] = None

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.bound_port}"

    @property
    def bound_port(self) -> int:
        """Actual listening port (differs from ``port`` when it was 0)."""
        if self._socket is not None:
            return self._socket.getsockname()[1]
        return self.port

    async def start(self) -> None:
        """Bind the listening socket and start serving in the background.

        Raises:
            OSError: If the address cannot be bound or the server stops early
        """
        # uvicorn exits the process on bind failure, so bind here instead
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        self._socket = sock

        config = uvicorn.Config(self.app, log_level="warning", lifespan="off")
        self._server = _EmbeddedServer(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]))
        while not self._server.started:
            if self._task.done():
                await self.stop()
                raise OSError(f"MCP facade failed to start on {self.host}:{self.port}")
            await asyncio.sleep(0.05)
        logger.info("MCP facade listening", url=self.base_url)

    async def stop(self) -> None:
        if self._server is not None and self._task is not None:
            self._server.should_exit = True
            with contextlib.suppress(Exception):
                await self._task
        if self._socket is not None:
            self._socket.close()
        self._server = None
        self._task = None
        self._socket = None
