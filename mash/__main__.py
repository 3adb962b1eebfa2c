"""
Command line entry point.

    mash [chat]          interactive chat (line based)
    mash mcp list        show configured MCP servers and whether they connect
    mash mcp tools NAME  show the tools of one MCP server
"""

import argparse
import asyncio
import sys
from typing import List, Optional, Set

from mash.config.settings import Settings, get_settings
from mash.core.agent.events import EventChannel, TasksUpdatedEvent, TextEvent, ToolCallEvent, ToolResultEvent
from mash.core.agent.prompts import format_params_block
from mash.core.agent.session import AgentSession, start_session
from mash.core.exceptions import MashException
from mash.core.external_mcp.registry import ExternalMCPRegistry
from mash.core.protocol.mcp_constants import DEFAULT_CONNECT_TIMEOUT
from mash.utils.logging import configure_logging

NEW_CONVERSATION_COMMAND = "/new"
EXIT_COMMANDS = {"/exit", "/quit"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mash", description="A minimal tool-using agent")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("chat", help="Interactive chat (default)")

    mcp_parser = subparsers.add_parser("mcp", help="MCP server management")
    mcp_sub = mcp_parser.add_subparsers(dest="action", required=True)
    mcp_sub.add_parser("list", help="List all configured MCP servers and their status")
    tools_parser = mcp_sub.add_parser("tools", help="Show tools for a specific MCP server")
    tools_parser.add_argument("name", help="MCP server name")
    return parser


async def cmd_mcp_list(settings: Settings) -> int:
    registry = ExternalMCPRegistry(settings.load_mcp_configs())
    configs = registry.configs
    if not configs:
        print("No MCP servers configured.")
        print(f"Add servers to {settings.config_path('mcp.json')}")
        return 0

    print("MCP Servers:\n")
    try:
        for name in sorted(configs):
            config = configs[name]
            line = f"  {name}  [{config.command_line}]"
            if config.disabled:
                print(f"{line}  - disabled")
                continue
            try:
                client = await asyncio.wait_for(registry.connect(name), timeout=DEFAULT_CONNECT_TIMEOUT)
            except asyncio.TimeoutError:
                print(f"{line}  - x timeout")
            except MashException as e:
                print(f"{line}  - x {e}")
            else:
                print(f"{line}  - connected ({client.tool_count} tools)")
    finally:
        await registry.close_all()
    return 0


async def cmd_mcp_tools(settings: Settings, name: str) -> int:
    registry = ExternalMCPRegistry(settings.load_mcp_configs())
    if name not in registry.configs:
        print(f"MCP server '{name}' not found in config.")
        if registry.configs:
            print(f"Available: {', '.join(sorted(registry.configs))}")
        return 1

    print(f"Connecting to '{name}'...")
    try:
        client = await registry.connect(name)
        if not client.tools:
            print("No tools available.")
            return 0

        print(f"\nTools for '{name}' ({client.tool_count} total):\n")
        for tool in client.tools:
            print(f"  {tool.name}")
            for line in (tool.description or "").splitlines()[:3]:
                print(f"    {line}")
            params = format_params_block(tool.input_schema)
            if params:
                print("    params:")
                print("\n".join(f"  {p}" for p in params.splitlines()))
            print()
    finally:
        await registry.close_all()
    return 0


async def print_events(events: EventChannel) -> None:
    while True:
        event = await events.get()
        if isinstance(event, TextEvent):
            print(event.text)
        elif isinstance(event, ToolCallEvent):
            print(f"> {event.name} {event.description}".rstrip())
        elif isinstance(event, ToolResultEvent):
            print(f"  {event.preview}")
        elif isinstance(event, TasksUpdatedEvent):
            print(f"[tasks {event.done}/{event.total}]")


async def run_turn(session: AgentSession, text: str) -> None:
    try:
        await session.submit(text)
    except MashException as e:
        print(f"error: {e}", file=sys.stderr)


async def cmd_chat(settings: Settings) -> int:
    session = await start_session(settings)
    for result in session.connect_results:
        if result.ok:
            print(f"  MCP: {result.name} ({result.tool_count} tools)")
        else:
            print(f"  MCP: {result.name} - {result.error}")

    printer = asyncio.create_task(print_events(session.events))
    turns: Set[asyncio.Task] = set()
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "mash> " if not session.busy else "")
            except EOFError:
                break
            text = line.strip()
            if not text:
                continue
            if text in EXIT_COMMANDS:
                break
            if text == NEW_CONVERSATION_COMMAND:
                await session.new_conversation()
                continue
            # While a turn runs, submit() only queues the input.
            task = asyncio.create_task(run_turn(session, text))
            turns.add(task)
            task.add_done_callback(turns.discard)
        if turns:
            await asyncio.gather(*turns)
    finally:
        printer.cancel()
        await session.close()
    return 0


async def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "mcp":
            if args.action == "list":
                return await cmd_mcp_list(settings)
            return await cmd_mcp_tools(settings, args.name)
        return await cmd_chat(settings)
    except MashException as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
