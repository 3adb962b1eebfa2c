"""
System prompt assembly.

The prompt is a fixed set of instructions followed by sections generated at
startup: the connected external tools (with ready-to-run curl commands
against the local HTTP facade) and the task file convention.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from mash.core.external_mcp.registry import ExternalMCPRegistry, namespaced_name
from mash.core.protocol.mcp_constants import MCP_CALL_ENDPOINT
from mash.core.tasks import format_task_prompt

IDENTITY = """You are mash, a coding and operations assistant running in the user's terminal.
You act on the user's machine through tools and report back concisely."""

TOOLS_GENERAL = """## Tools

- **shell**: run any bash command. Output is returned as stdout, then a `[stderr]` section when stderr is not empty, then `[exit code: N]` when the command failed.
- Prefer small, inspectable commands. Read files before editing them.
- Commands run to completion; avoid interactive programs and commands that never exit."""

WORK_STYLE = """## Work Style

- Break multi-step work into a task list (see Task List Protocol) and keep it current.
- Verify the result of each step before moving on.
- When something fails, read the error output and adjust instead of retrying blindly."""

RESPONSE_FORMAT = """## Response Format

- Keep replies short. Use plain text; fenced code blocks only for code or commands.
- Summarize what you changed and anything the user still needs to do."""

SYSTEM_PROMPT = "\n\n".join([IDENTITY, TOOLS_GENERAL, WORK_STYLE, RESPONSE_FORMAT])


def format_params_block(input_schema: Optional[Dict[str, Any]]) -> str:
    """List a tool's parameters as ``    name: type`` lines, ``*`` marking required."""
    if not isinstance(input_schema, dict):
        return ""
    props = input_schema.get("properties")
    if not isinstance(props, dict):
        return ""
    required = input_schema.get("required")
    required_names = {name for name in required if isinstance(name, str)} if isinstance(required, list) else set()

    lines: List[str] = []
    for pname, pschema in props.items():
        ptype = pschema.get("type") if isinstance(pschema, dict) else None
        if not isinstance(ptype, str):
            ptype = "any"
        req = " *" if pname in required_names else ""
        lines.append(f"    {pname}: {ptype}{req}")
    return "\n".join(lines)


def format_mcp_tools_for_prompt(registry: ExternalMCPRegistry, base_url: str) -> str:
    """Describe every connected external tool and how to call it with curl.

    Returns:
        The prompt section, or an empty string when no tools are connected
    """
    base = base_url.rstrip("/")
    blocks: List[str] = []
    for server_name, tools in registry.iter_servers_and_tools():
        for tool in tools:
            full_name = namespaced_name(server_name, tool.name)
            desc_short = " ".join((tool.description or "(no description)").splitlines()[:3])
            params_block = format_params_block(tool.input_schema)
            curl_example = (
                f"curl -s -X POST '{base}{MCP_CALL_ENDPOINT}' -H 'Content-Type: application/json' "
                f"-d '{{\"server\":\"{server_name}\",\"tool\":\"{tool.name}\",\"arguments\":{{...}}}}'"
            )
            if params_block:
                blocks.append(
                    f"- **{full_name}**\n  description: {desc_short}\n  params:\n{params_block}\n  request: {curl_example}"
                )
            else:
                blocks.append(f"- **{full_name}**\n  description: {desc_short}\n  request: {curl_example}")

    if not blocks:
        return ""
    header = (
        "\n\n## External Tools (call via shell with curl)\n"
        f"To use one of these tools, run curl with the shell tool, POSTing to {MCP_CALL_ENDPOINT}.\n\n"
    )
    return header + "\n\n".join(blocks)


def build_system_prompt(registry: ExternalMCPRegistry, base_url: str, task_file: Path) -> str:
    """Full system prompt for a session."""
    return SYSTEM_PROMPT + format_mcp_tools_for_prompt(registry, base_url) + format_task_prompt(task_file)
