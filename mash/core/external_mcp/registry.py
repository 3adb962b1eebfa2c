"""
External MCP server registry.

Owns every configured server and the live subset of connections, exposes
their tools under namespaced names and routes namespaced calls back to the
owning connection.
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
import structlog

from mash.core.exceptions import MCPConnectionError, MashException, RoutingError
from mash.core.llm.base import ToolDefinition
from mash.core.protocol.mcp_constants import TOOL_NAMESPACE_PREFIX, TOOL_NAMESPACE_SEPARATOR

from .external_mcp_client import ExternalMCPClient
from .external_mcp_models import ConnectResult, ExternalServerConfig, MCPTool

logger = structlog.get_logger(__name__)

NAMESPACE_HEAD = f"{TOOL_NAMESPACE_PREFIX}{TOOL_NAMESPACE_SEPARATOR}"


def namespaced_name(server: str, tool: str) -> str:
    """Build the catalog name ``<prefix>__<server>__<tool>``."""
    return f"{NAMESPACE_HEAD}{server}{TOOL_NAMESPACE_SEPARATOR}{tool}"


def is_namespaced(name: str) -> bool:
    return name.startswith(NAMESPACE_HEAD)


def split_namespaced_name(name: str) -> Tuple[str, str]:
    """Recover ``(server, tool)`` from a namespaced tool name.

    The prefix is stripped first, then the remainder is split on the first
    separator, so tool names may themselves contain the separator while
    server names may not.

    Raises:
        RoutingError: If the name lacks the prefix, the separator, or either part
    """
    if not is_namespaced(name):
        raise RoutingError(name, f"expected '{NAMESPACE_HEAD}<server>{TOOL_NAMESPACE_SEPARATOR}<tool>'")
    rest = name[len(NAMESPACE_HEAD):]
    server, sep, tool = rest.partition(TOOL_NAMESPACE_SEPARATOR)
    if not sep or not server or not tool:
        raise RoutingError(name, f"expected '{NAMESPACE_HEAD}<server>{TOOL_NAMESPACE_SEPARATOR}<tool>'")
    return server, tool


class ExternalMCPRegistry:
    """Registry of configured MCP servers and their live connections."""

    def __init__(self, configs: Optional[Mapping[str, ExternalServerConfig]] = None) -> None:
        """Initialize the registry.

        Args:
            configs: Server launch specs keyed by configured name
        """
        self._configs: Dict[str, ExternalServerConfig] = dict(configs or {})
        self._clients: Dict[str, ExternalMCPClient] = {}

    @property
    def configs(self) -> Dict[str, ExternalServerConfig]:
        return dict(self._configs)

    def is_connected(self, name: str) -> bool:
        return name in self._clients

    def get_client(self, name: str) -> Optional[ExternalMCPClient]:
        return self._clients.get(name)

    async def connect(self, name: str) -> ExternalMCPClient:
        """Connect one configured server, replacing any existing connection.

        Args:
            name: Configured server name

        Returns:
            The new, ready connection

        Raises:
            MCPConnectionError: If the server is unknown, disabled, or fails to
                spawn or handshake
        """
        config = self._configs.get(name)
        if config is None:
            raise MCPConnectionError(name, "not found in config")
        if config.disabled:
            raise MCPConnectionError(name, "server is disabled")

        client = await ExternalMCPClient.connect(name, config)

        previous = self._clients.get(name)
        self._clients[name] = client
        if previous is not None:
            logger.info("Replacing existing MCP connection", server=name)
            await previous.close()
        return client

    async def connect_all(self) -> List[ConnectResult]:
        """Connect every enabled server, best effort.

        One server failing never prevents the others from connecting. Each
        outcome is reported individually; nothing is raised.

        Returns:
            One result per enabled server, in name order
        """
        results: List[ConnectResult] = []
        for name in sorted(self._configs):
            if self._configs[name].disabled:
                continue
            try:
                client = await self.connect(name)
            except MashException as e:
                logger.warning("MCP server failed to connect", server=name, error=str(e))
                results.append(ConnectResult(name=name, error=str(e)))
            else:
                results.append(ConnectResult(name=name, tool_count=client.tool_count))
        return results

    def iter_servers_and_tools(self) -> Iterator[Tuple[str, List[MCPTool]]]:
        """Yield ``(server, tools)`` for every live connection."""
        for server_name, client in self._clients.items():
            yield server_name, client.tools

    def catalog(self) -> List[ToolDefinition]:
        """Namespaced tool definitions of every live connection.

        Order is stable within a server and across repeated calls while no
        connection changes.
        """
        definitions: List[ToolDefinition] = []
        for server_name, tools in self.iter_servers_and_tools():
            for tool in tools:
                definitions.append(ToolDefinition(
                    name=namespaced_name(server_name, tool.name),
                    description=tool.description or "",
                    input_schema=tool.input_schema,
                ))
        return definitions

    async def call_tool(self, full_name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """Route a namespaced call to the owning connection.

        Raises:
            RoutingError: If the name is malformed or its server is not connected
            MCPProtocolError: If the server call itself fails
        """
        server_name, tool_name = split_namespaced_name(full_name)
        client = self._clients.get(server_name)
        if client is None:
            raise RoutingError(full_name, f"MCP server '{server_name}' not connected")
        return await client.call_tool(tool_name, arguments)

    async def close_all(self) -> None:
        """Terminate every live connection."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.close()
