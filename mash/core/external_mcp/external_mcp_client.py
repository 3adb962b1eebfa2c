"""
External MCP Client for communicating with MCP servers over stdio.

This module provides the client side of one external tool connection: it
runs the MCP handshake over a child process's pipes, snapshots the
server's tool list, and correlates line-delimited JSON-RPC requests with
their responses.
"""

import asyncio
from typing import Any, Dict, List, Optional
import structlog

from .external_mcp_models import ExternalServerConfig, MCPTool, extract_result_text
from .external_mcp_process import ExternalMCPProcess
from ..protocol.mcp_protocol import MCPNotification, MCPRequest, match_response, parse_message_line
from ..protocol.mcp_constants import (
    MCP_PROTOCOL_VERSION,
    MCP_CLIENT_NAME,
    MCP_CLIENT_VERSION,
    FIRST_REQUEST_ID,
    MCPMethod,
)
from ..exceptions import (
    MCPConnectionError,
    MCPProtocolError,
)

logger = structlog.get_logger(__name__)


class ExternalMCPClient:
    """Client for one external MCP server running as a child process.

    Instances are normally created through :meth:`connect`, which leaves
    the client ready to serve :meth:`call_tool`. The tool list is fetched
    once at connect time and never refreshed; reconnect to pick up changes.
    """

    def __init__(self, name: str, process: ExternalMCPProcess):
        """Initialize the external MCP client.

        Args:
            name: Configured server name
            process: Process manager owning the server's pipes
        """
        self.name = name
        self.process = process
        self.next_id: int = FIRST_REQUEST_ID
        self.tools: List[MCPTool] = []
        self.initialized: bool = False
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(cls, name: str, config: ExternalServerConfig) -> "ExternalMCPClient":
        """Spawn the server, run the handshake and fetch its tools.

        Args:
            name: Configured server name
            config: Launch spec for the server

        Returns:
            A ready client

        Raises:
            MCPConnectionError: If spawning, the handshake or tools/list fails.
                The child process is terminated before raising.
        """
        process = ExternalMCPProcess(name, config.command, config.args, config.env)
        await process.start()

        client = cls(name, process)
        try:
            await client.initialize_session()
            client.tools = await client.list_tools()
        except (MCPProtocolError, OSError) as e:
            await client.close()
            raise MCPConnectionError(name, str(e), cause=e) from e
        except BaseException:
            # cancelled mid-handshake, e.g. by a connect timeout
            await client.close()
            raise

        logger.info("MCP server connected", server=name, tool_count=len(client.tools))
        return client

    async def initialize_session(self) -> None:
        """Perform the MCP handshake.

        1. Sends the initialize request and waits for its response
        2. Sends the initialized notification

        Raises:
            MCPProtocolError: If the server answers with an error or hangs up.
        """
        logger.debug("Starting MCP session initialization", server=self.name)
        await self.send_request(
            MCPMethod.INITIALIZE.value,
            {
                "protocolVersion": MCP_PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {
                    "name": MCP_CLIENT_NAME,
                    "version": MCP_CLIENT_VERSION
                }
            }
        )
        await self.send_notification(MCPMethod.INITIALIZED.value, {})
        self.initialized = True
        logger.debug("MCP session initialized", server=self.name)

    async def list_tools(self) -> List[MCPTool]:
        """Get list of available tools from the external MCP server.

        A missing or empty ``tools`` array is an empty tool set, not an error.

        Returns:
            List[MCPTool]: Tools advertised by the server
        """
        result = await self.send_request(MCPMethod.LIST_TOOLS.value, {})
        raw_tools = result.get("tools") if isinstance(result, dict) else None
        if not raw_tools:
            return []
        if not isinstance(raw_tools, list):
            raise MCPProtocolError(MCPMethod.LIST_TOOLS.value, "'tools' is not an array", result)
        try:
            return [MCPTool.model_validate(tool) for tool in raw_tools]
        except ValueError as e:
            raise MCPProtocolError(MCPMethod.LIST_TOOLS.value, f"invalid tool entry: {e}", result) from e

    async def call_tool(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """Call a tool on the external MCP server.

        Args:
            tool_name: Name of the tool as advertised by the server
            arguments: Tool arguments

        Returns:
            Newline-joined text content of the result, or the raw result as
            JSON when it carries no text

        Raises:
            MCPProtocolError: If the server returns an error or closes the stream
        """
        logger.info("Calling external MCP tool", server=self.name, tool=tool_name)
        result = await self.send_request(
            MCPMethod.CALL_TOOL.value,
            {"name": tool_name, "arguments": arguments if arguments is not None else {}}
        )
        return extract_result_text(result)

    async def send_request(self, method: str, params: Dict[str, Any]) -> Any:
        """Send a request and wait for the response carrying the same id.

        Lines that are blank, not JSON, notifications or responses to other
        ids are skipped. Only one request is in flight per connection;
        concurrent callers wait on the connection lock.

        Args:
            method: JSON-RPC method
            params: Method parameters

        Returns:
            The response's ``result`` member

        Raises:
            MCPProtocolError: On an error response, end of stream or broken pipe
        """
        async with self._lock:
            request_id = self.next_id
            self.next_id += 1

            request = MCPRequest(id=request_id, method=method, params=params)
            try:
                await self.process.write_line(request.to_line())
            except (BrokenPipeError, ConnectionResetError) as e:
                raise MCPProtocolError(method, f"server '{self.name}' closed connection") from e

            while True:
                try:
                    line = await self.process.read_line()
                except ValueError as e:
                    raise MCPProtocolError(method, f"unreadable response line: {e}") from e
                if line is None:
                    raise MCPProtocolError(method, f"server '{self.name}' closed connection")

                data = parse_message_line(line)
                if data is None:
                    continue
                response = match_response(data, request_id)
                if response is None:
                    logger.debug("Skipping unrelated MCP message", server=self.name, message_id=data.get("id"))
                    continue

                if response.is_error:
                    raise MCPProtocolError(method, f"MCP error: {response.error}", response.error)
                return response.result

    async def send_notification(self, method: str, params: Dict[str, Any]) -> None:
        """Send a notification; no response is read.

        Raises:
            MCPProtocolError: If the server's stdin is closed
        """
        notification = MCPNotification(method=method, params=params)
        async with self._lock:
            try:
                await self.process.write_line(notification.to_line())
            except (BrokenPipeError, ConnectionResetError) as e:
                raise MCPProtocolError(method, f"server '{self.name}' closed connection") from e

    @property
    def tool_count(self) -> int:
        return len(self.tools)

    async def close(self) -> None:
        """Terminate the server process.

        Safe to call multiple times.
        """
        await self.process.stop()
        self.initialized = False
        logger.info("MCP client closed", server=self.name)
