"""MCP protocol constants and JSON-RPC message handling."""
