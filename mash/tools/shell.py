"""
Local shell tool.

Runs a command through ``bash -c`` and folds stdout, stderr and a non-zero
exit status into one text result for the model.
"""

import asyncio
from typing import Any, Dict

import structlog

from mash.core.exceptions import ExecutionError
from mash.core.llm.base import ToolDefinition

logger = structlog.get_logger(__name__)

SHELL_TOOL_NAME = "shell"
SHELL_EXECUTABLE = "bash"
DEFAULT_SHELL_TIMEOUT = 120

SHELL_TOOL = ToolDefinition(
    name=SHELL_TOOL_NAME,
    description=(
        "Execute a bash command and return its output. stderr is appended "
        "after a [stderr] marker and a non-zero exit status is reported as "
        "[exit code: N]."
    ),
    input_schema={
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "description": "The bash command to execute"
            },
            "timeout": {
                "type": "integer",
                "description": f"Timeout in seconds. Default {DEFAULT_SHELL_TIMEOUT}."
            }
        },
        "required": ["command"]
    },
)


def format_shell_output(stdout: str, stderr: str, exit_code: int) -> str:
    """Compose the tool result text.

    Args:
        stdout: Captured standard output
        stderr: Captured standard error
        exit_code: Process exit status

    Returns:
        stdout, then ``[stderr]`` and stderr when present, then an
        ``[exit code: N]`` trailer when the status is non-zero
    """
    result = ""
    if stdout:
        result += stdout
    if stderr:
        if result:
            result += "\n"
        result += "[stderr]\n"
        result += stderr
    if exit_code != 0:
        result += f"\n[exit code: {exit_code}]"
    return result


async def execute_shell(arguments: Dict[str, Any]) -> str:
    """Run the shell tool.

    The command runs to completion. ``timeout`` is accepted for schema
    compatibility but not enforced here.

    Args:
        arguments: Tool input with ``command`` and optional ``timeout``

    Returns:
        Formatted output text

    Raises:
        ExecutionError: If no command was given or the shell cannot be spawned
    """
    command = arguments.get("command")
    if not isinstance(command, str):
        raise ExecutionError(str(command), "missing 'command' string")
    timeout = arguments.get("timeout", DEFAULT_SHELL_TIMEOUT)

    logger.info("Running shell command", command=command, timeout=timeout)
    try:
        process = await asyncio.create_subprocess_exec(
            SHELL_EXECUTABLE,
            "-c",
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        raise ExecutionError(command, f"failed to spawn {SHELL_EXECUTABLE}", cause=e) from e

    stdout, stderr = await process.communicate()
    exit_code = process.returncode if process.returncode is not None else -1
    logger.debug("Shell command finished", command=command, exit_code=exit_code)

    return format_shell_output(
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
        exit_code,
    )
