"""
Custom exceptions for mash.

This module defines a hierarchical exception structure that provides:
- Clear error categorization for different failure modes
- Detailed error context with the 'details' field
- Cause tracking for debugging nested failures

All errors share the same structure (message, details, cause) so callers
can handle them uniformly while still catching specific failure kinds.
"""

from typing import Optional, Dict, Any


class MashException(Exception):
    """Base exception for all mash errors.
    
    Attributes:
        message: Human-readable error message
        details: Additional context about the error
        cause: Original exception that caused this error
    """
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        
    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


# Remote LLM API exceptions
class TransportError(MashException):
    """Raised when a request to the remote chat API fails.
    
    Covers network errors, non-2xx responses and undecodable bodies. For
    HTTP errors the status code and raw body are kept verbatim.
    """
    
    def __init__(
        self,
        reason: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        if status_code is not None:
            message = f"API error ({status_code}): {body if body is not None else ''}"
        else:
            message = f"API request failed: {reason}"
        super().__init__(
            message,
            details={"status_code": status_code, "body": body, "reason": reason},
            cause=cause
        )
        self.status_code = status_code
        self.body = body


# External MCP exceptions
class ExternalMCPException(MashException):
    """Base exception for external MCP integration errors."""
    pass


class MCPConnectionError(ExternalMCPException):
    """Raised when spawning or handshaking with an MCP server fails."""
    
    def __init__(self, server_name: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Failed to connect to MCP server '{server_name}': {reason}",
            details={"server_name": server_name, "reason": reason},
            cause=cause
        )
        self.server_name = server_name


class MCPProtocolError(ExternalMCPException):
    """Raised when a JSON-RPC exchange is malformed, carries an error or ends early."""
    
    def __init__(self, method: str, reason: str, response_data: Optional[Any] = None):
        super().__init__(
            f"MCP protocol error in method '{method}': {reason}",
            details={"method": method, "reason": reason, "response_data": response_data}
        )
        self.method = method
        self.response_data = response_data


# Routing exceptions
class RoutingError(MashException):
    """Raised when a tool name cannot be resolved to a connected server and tool."""
    
    def __init__(self, tool_name: str, reason: str):
        super().__init__(
            f"Cannot route tool '{tool_name}': {reason}",
            details={"tool_name": tool_name, "reason": reason}
        )
        self.tool_name = tool_name


# Local execution exceptions
class ExecutionError(MashException):
    """Raised when a local command cannot be started."""
    
    def __init__(self, command: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Failed to execute '{command}': {reason}",
            details={"command": command, "reason": reason},
            cause=cause
        )


# Configuration exceptions
class ConfigurationError(MashException):
    """Raised when configuration is invalid or missing."""
    
    def __init__(self, config_key: str, reason: str):
        super().__init__(
            f"Configuration error for '{config_key}': {reason}",
            details={"config_key": config_key, "reason": reason}
        )
