"""External MCP server integration over subprocess stdio."""

from .external_mcp_client import ExternalMCPClient
from .external_mcp_models import ConnectResult, ExternalServerConfig, MCPCallRequest, MCPTool
from .registry import ExternalMCPRegistry

__all__ = [
    "ExternalMCPClient",
    "ExternalMCPRegistry",
    "ExternalServerConfig",
    "MCPTool",
    "MCPCallRequest",
    "ConnectResult",
]
