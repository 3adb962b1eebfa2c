"""mash - a minimal tool-using agent with external MCP server support."""

__version__ = "0.1.0"
