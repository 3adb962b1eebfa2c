"""
Data models for External MCP communication.

This module contains the data structures used to configure, describe and
call external MCP servers.
"""

import json
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ExternalServerConfig(BaseModel):
    """Launch spec for one external MCP server, as written in mcp.json."""
    model_config = ConfigDict(frozen=True)

    name: str = ""
    command: str
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    disabled: bool = False

    @property
    def command_line(self) -> str:
        """Command and arguments as a single display string."""
        if not self.args:
            return self.command
        return f"{self.command} {' '.join(self.args)}"


class MCPTool(BaseModel):
    """A tool advertised by an MCP server in its tools/list result."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: Optional[str] = None
    input_schema: Dict[str, Any] = Field(default_factory=dict, alias="inputSchema")


def extract_result_text(result: Any) -> str:
    """Flatten a tools/call result into text.

    Text fields of the content array are joined by newlines. When the
    result carries no text at all, the whole result is returned as
    pretty-printed JSON.
    """
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        texts = [
            block["text"]
            for block in result["content"]
            if isinstance(block, dict) and isinstance(block.get("text"), str)
        ]
        if texts:
            return "\n".join(texts)
    return json.dumps(result, indent=2, ensure_ascii=False)


class MCPCallRequest(BaseModel):
    """Body of a call routed through the local HTTP facade."""
    server: str
    tool: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ConnectResult(BaseModel):
    """Outcome of connecting one server during a bulk connect."""
    name: str
    tool_count: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
