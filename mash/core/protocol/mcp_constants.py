"""
MCP protocol constants and configuration values.

All protocol-specific constants live here so the stdio client, the
registry and the HTTP facade agree on versions, method names and the
tool namespacing scheme.
"""

from enum import Enum
from typing import Final


# Protocol Version
MCP_PROTOCOL_VERSION: Final[str] = "2024-11-05"

# Client Information
MCP_CLIENT_NAME: Final[str] = "mash"
MCP_CLIENT_VERSION: Final[str] = "0.1.0"

# JSONRPC
JSONRPC_VERSION: Final[str] = "2.0"
FIRST_REQUEST_ID: Final[int] = 1

# Tool namespacing: <prefix>__<server>__<tool>
TOOL_NAMESPACE_PREFIX: Final[str] = "external"
TOOL_NAMESPACE_SEPARATOR: Final[str] = "__"

# Local HTTP facade
DEFAULT_MCP_HOST: Final[str] = "127.0.0.1"
DEFAULT_MCP_HTTP_PORT: Final[int] = 31415
MCP_CALL_ENDPOINT: Final[str] = "/mcp/call"

# Only applied by ad hoc connects outside the agent core (CLI listing)
DEFAULT_CONNECT_TIMEOUT: Final[int] = 30

# Grace period before a child process is killed on teardown
PROCESS_TERMINATE_TIMEOUT: Final[float] = 5.0


class MCPMethod(str, Enum):
    """MCP protocol methods."""
    INITIALIZE = "initialize"
    INITIALIZED = "notifications/initialized"
    LIST_TOOLS = "tools/list"
    CALL_TOOL = "tools/call"
