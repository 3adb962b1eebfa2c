"""Tools the agent can execute: the local shell and routed external tools."""

from .executor import ToolExecutor
from .shell import SHELL_TOOL, SHELL_TOOL_NAME, execute_shell

__all__ = ["ToolExecutor", "SHELL_TOOL", "SHELL_TOOL_NAME", "execute_shell"]
