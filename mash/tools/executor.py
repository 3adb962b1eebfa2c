"""
Tool catalog and dispatch.

Resolves a tool-use name to either the local shell or an external MCP tool
reached through the registry.
"""

from typing import Any, Dict, List

import structlog

from mash.core.exceptions import RoutingError
from mash.core.external_mcp.registry import ExternalMCPRegistry, is_namespaced
from mash.core.llm.base import ToolDefinition

from .shell import SHELL_TOOL, SHELL_TOOL_NAME, execute_shell

logger = structlog.get_logger(__name__)


class ToolExecutor:
    """Executes tool uses requested by the model."""

    def __init__(self, registry: ExternalMCPRegistry) -> None:
        self.registry = registry

    def definitions(self) -> List[ToolDefinition]:
        """The shell tool followed by every namespaced external tool."""
        return [SHELL_TOOL, *self.registry.catalog()]

    async def execute(self, name: str, arguments: Dict[str, Any]) -> str:
        """Run one tool and return its text result.

        Raises:
            RoutingError: If the name matches no known tool
            ExecutionError: If the shell cannot be spawned
            MCPProtocolError: If an external call fails
        """
        if name == SHELL_TOOL_NAME:
            return await execute_shell(arguments)
        if is_namespaced(name):
            return await self.registry.call_tool(name, arguments)
        raise RoutingError(name, "unknown tool")
