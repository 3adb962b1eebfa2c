"""JSON-RPC 2.0 message models for the MCP stdio transport.

Each message travels as one JSON object on its own line. Requests carry a
numeric id and expect a response with the same id; notifications carry no
id and expect nothing back.
"""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError
import structlog

from .mcp_constants import JSONRPC_VERSION

logger = structlog.get_logger(__name__)


class MCPNotification(BaseModel):
    """JSON-RPC notification (no id, no response expected)."""

    jsonrpc: str = Field(default=JSONRPC_VERSION)
    method: str = Field(..., description="Method to invoke")
    params: Dict[str, Any] = Field(default_factory=dict)

    def to_line(self) -> str:
        """Serialize to a single newline-terminated JSON line."""
        return json.dumps(self.model_dump(), ensure_ascii=False) + "\n"


class MCPRequest(MCPNotification):
    """JSON-RPC request."""

    id: int = Field(..., description="Request id, echoed back by the response")


class MCPResponse(BaseModel):
    """JSON-RPC response.

    Only the fields needed for correlation are required. Anything else on
    the line (``jsonrpc`` included) is tolerated.
    """

    id: Optional[Any] = None
    result: Optional[Any] = None
    error: Optional[Any] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


def parse_message_line(line: str) -> Optional[Dict[str, Any]]:
    """Parse one line read from a server's stdout.

    Servers may interleave log output with protocol traffic, so anything
    that is not a JSON object yields None instead of raising.

    Args:
        line: Raw line without trailing newline

    Returns:
        The decoded object, or None for blank and non-JSON lines
    """
    text = line.strip()
    if not text:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Skipping non-JSON line from MCP server", line=text[:200])
        return None
    if not isinstance(data, dict):
        return None
    return data


def match_response(data: Dict[str, Any], request_id: int) -> Optional[MCPResponse]:
    """Return the decoded response if ``data`` answers ``request_id``.

    Notifications and responses to other ids return None. Boolean ids
    never match even though ``True == 1`` in Python.
    """
    msg_id = data.get("id")
    if isinstance(msg_id, bool) or msg_id != request_id:
        return None
    try:
        return MCPResponse.model_validate(data)
    except ValidationError:
        return None
