"""
External MCP Process Management.

This module owns the child process behind one external MCP server: it
spawns it with piped stdin/stdout, moves newline-delimited lines in both
directions, and terminates it on teardown.
"""

import asyncio
import os
from typing import Dict, List, Optional
import structlog

from mash.core.exceptions import MCPConnectionError
from mash.core.protocol.mcp_constants import PROCESS_TERMINATE_TIMEOUT

logger = structlog.get_logger(__name__)

# Tool results (file contents, page dumps) easily exceed asyncio's 64 KiB default.
STREAM_LIMIT = 16 * 1024 * 1024


class ExternalMCPProcess:
    """Manages an external MCP server process speaking over stdio."""

    def __init__(
        self,
        name: str,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        terminate_timeout: float = PROCESS_TERMINATE_TIMEOUT
    ):
        """Initialize the external MCP process manager.

        Args:
            name: Configured server name, used in errors and logs
            command: Executable to launch
            args: Arguments to pass to the executable
            env: Variables overlaid on the parent environment
            terminate_timeout: Seconds to wait after SIGTERM before SIGKILL
        """
        self.name = name
        self.command = command
        self.args = list(args or [])
        self.env = dict(env or {})
        self.terminate_timeout = terminate_timeout
        self.process: Optional[asyncio.subprocess.Process] = None

    async def start(self) -> None:
        """Spawn the server process.

        Raises:
            MCPConnectionError: If the executable cannot be started
        """
        if self.is_running():
            logger.info("External MCP server already running", server=self.name)
            return

        child_env = os.environ.copy()
        child_env.update(self.env)

        logger.info("Starting external MCP server", server=self.name, command=self.command, args=self.args)
        try:
            self.process = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                env=child_env,
                limit=STREAM_LIMIT,
            )
        except (OSError, ValueError) as e:
            raise MCPConnectionError(self.name, f"failed to spawn '{self.command}'", cause=e) from e

        logger.debug("External MCP server spawned", server=self.name, pid=self.process.pid)

    async def write_line(self, line: str) -> None:
        """Write one line to the server's stdin and flush it.

        Args:
            line: Newline-terminated text
        """
        if self.process is None or self.process.stdin is None:
            raise BrokenPipeError(f"MCP server '{self.name}' is not running")
        self.process.stdin.write(line.encode("utf-8"))
        await self.process.stdin.drain()

    async def read_line(self) -> Optional[str]:
        """Read the next line from the server's stdout.

        Returns:
            The decoded line without its terminator, or None at end of stream
        """
        if self.process is None or self.process.stdout is None:
            return None
        raw = await self.process.stdout.readline()
        if not raw:
            return None
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")

    async def stop(self) -> None:
        """Stop the external MCP server process.

        Sends SIGTERM, waits up to ``terminate_timeout`` seconds, then falls
        back to SIGKILL. No shutdown handshake is attempted.

        Safe to call multiple times - no-op if process not running.
        """
        process = self.process
        self.process = None
        if process is None or process.returncode is not None:
            return

        logger.info("Stopping external MCP process", server=self.name, pid=process.pid)
        if process.stdin is not None:
            process.stdin.close()
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=self.terminate_timeout)
        except asyncio.TimeoutError:
            logger.warning("Graceful shutdown timed out, forcing termination", server=self.name)
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    def is_running(self) -> bool:
        """Check if the external MCP server process is running.

        Returns:
            bool: True if running, False otherwise
        """
        return self.process is not None and self.process.returncode is None
