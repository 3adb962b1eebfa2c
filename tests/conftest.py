"""Shared fixtures: a scripted stdio MCP server."""

import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from mash.core.external_mcp.external_mcp_models import ExternalServerConfig

FAKE_SERVER_SOURCE = textwrap.dedent('''
    import json
    import os
    import sys

    MODE = sys.argv[1] if len(sys.argv) > 1 else "normal"

    TOOLS = [
        {
            "name": "echo",
            "description": "Echo text back",
            "inputSchema": {
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"],
            },
        },
        {"name": "fail", "inputSchema": {"type": "object"}},
        {"name": "raw", "description": "Structured result", "inputSchema": {"type": "object"}},
        {"name": "exit", "inputSchema": {"type": "object"}},
    ]


    def send(obj):
        sys.stdout.write(json.dumps(obj) + "\\n")
        sys.stdout.flush()


    while True:
        line = sys.stdin.readline()
        if not line:
            break
        line = line.strip()
        if not line:
            continue
        msg = json.loads(line)
        method = msg.get("method")
        msg_id = msg.get("id")
        if msg_id is None:
            continue

        if method == "initialize":
            if MODE == "init_error":
                send({"jsonrpc": "2.0", "id": msg_id, "error": {"code": -32600, "message": "unsupported client"}})
                continue
            if MODE == "init_exit":
                sys.exit(0)
            if MODE == "init_hang":
                with open(os.path.join(os.path.dirname(os.path.abspath(__file__)), "hang.pid"), "w") as f:
                    f.write(str(os.getpid()))
                continue
            send({
                "jsonrpc": "2.0",
                "id": msg_id,
                "result": {
                    "protocolVersion": msg["params"]["protocolVersion"],
                    "capabilities": {"tools": {}},
                    "serverInfo": {"name": "fake", "version": "1.0"},
                },
            })
        elif method == "tools/list":
            if MODE == "no_tools":
                send({"jsonrpc": "2.0", "id": msg_id, "result": {}})
            else:
                send({"jsonrpc": "2.0", "id": msg_id, "result": {"tools": TOOLS}})
        elif method == "tools/call":
            name = msg["params"]["name"]
            args = msg["params"].get("arguments", {})
            if name == "echo":
                print("log: handling echo", flush=True)
                send({"jsonrpc": "2.0", "method": "notifications/message", "params": {"level": "info"}})
                send({"jsonrpc": "2.0", "id": msg_id + 1000, "result": {"content": [{"type": "text", "text": "wrong"}]}})
                send({
                    "jsonrpc": "2.0",
                    "id": msg_id,
                    "result": {"content": [
                        {"type": "text", "text": args.get("text", "")},
                        {"type": "text", "text": "done"},
                    ]},
                })
            elif name == "fail":
                send({"jsonrpc": "2.0", "id": msg_id, "error": {"code": -32000, "message": "tool exploded"}})
            elif name == "raw":
                send({"jsonrpc": "2.0", "id": msg_id, "result": {"value": 42}})
            elif name == "exit":
                sys.exit(0)
        else:
            send({"jsonrpc": "2.0", "id": msg_id, "error": {"code": -32601, "message": "method not found"}})
''')


@pytest.fixture
def fake_server_script(tmp_path: Path) -> Path:
    path = tmp_path / "fake_mcp_server.py"
    path.write_text(FAKE_SERVER_SOURCE, encoding="utf-8")
    return path


@pytest.fixture
def fake_server_config(fake_server_script: Path) -> Callable[..., ExternalServerConfig]:
    """Factory for configs launching the fake server in a given mode."""

    def make(mode: str = "normal", name: str = "fake", disabled: bool = False) -> ExternalServerConfig:
        return ExternalServerConfig(
            name=name,
            command=sys.executable,
            args=["-u", str(fake_server_script), mode],
            disabled=disabled,
        )

    return make


