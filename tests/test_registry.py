"""Tests for tool namespacing and the external server registry."""

import pytest

from mash.core.exceptions import MCPConnectionError, MCPProtocolError, RoutingError
from mash.core.external_mcp import registry as registry_module
from mash.core.external_mcp.external_mcp_models import ExternalServerConfig
from mash.core.external_mcp.registry import (
    ExternalMCPRegistry,
    is_namespaced,
    namespaced_name,
    split_namespaced_name,
)

from fakes import FakeMCPClient, make_tool


@pytest.fixture
def fake_connect(monkeypatch):
    """Replace process spawning with in-process fake clients."""
    clients = {}

    async def connect(name, config):
        if config.command == "broken":
            raise MCPConnectionError(name, "failed to spawn 'broken'")
        client = clients.get(name) or FakeMCPClient(name, [make_tool("status", "Show status")], {"status": "clean"})
        clients[name] = client
        return client

    monkeypatch.setattr(registry_module.ExternalMCPClient, "connect", staticmethod(connect))
    return clients


def config(command: str = "fake-server", disabled: bool = False) -> ExternalServerConfig:
    return ExternalServerConfig(command=command, disabled=disabled)


@pytest.mark.parametrize("server,tool", [
    ("git", "status"),
    ("fs", "read_file"),
    ("db", "run__query"),
])
def test_namespaced_name_round_trip(server, tool):
    full_name = namespaced_name(server, tool)
    assert is_namespaced(full_name)
    assert split_namespaced_name(full_name) == (server, tool)


def test_namespaced_name_format():
    assert namespaced_name("git", "status") == "external__git__status"


@pytest.mark.parametrize("name", [
    "external__git",
    "external__",
    "external____status",
    "external__git__",
    "shell",
    "git__status",
])
def test_split_rejects_malformed_names(name):
    with pytest.raises(RoutingError):
        split_namespaced_name(name)


@pytest.mark.asyncio
async def test_call_routes_to_owning_server(fake_connect):
    """A namespaced call reaches the connected server with the bare tool name."""
    registry = ExternalMCPRegistry({"git": config()})
    await registry.connect("git")

    result = await registry.call_tool("external__git__status", {"short": True})

    assert result == "clean"
    assert fake_connect["git"].calls == [("status", {"short": True})]


@pytest.mark.asyncio
async def test_call_with_missing_tool_part_is_routing_error(fake_connect):
    registry = ExternalMCPRegistry({"git": config()})
    await registry.connect("git")

    with pytest.raises(RoutingError):
        await registry.call_tool("external__git", {})
    assert fake_connect["git"].calls == []


@pytest.mark.asyncio
async def test_call_to_unconnected_server_is_routing_error():
    registry = ExternalMCPRegistry({"git": config()})
    with pytest.raises(RoutingError) as exc_info:
        await registry.call_tool("external__git__status", {})
    assert "not connected" in str(exc_info.value)


@pytest.mark.asyncio
async def test_server_errors_propagate(fake_connect):
    registry = ExternalMCPRegistry({"git": config()})
    await registry.connect("git")
    with pytest.raises(MCPProtocolError):
        await registry.call_tool("external__git__push", {})


@pytest.mark.asyncio
async def test_connect_unknown_server_fails():
    registry = ExternalMCPRegistry({})
    with pytest.raises(MCPConnectionError) as exc_info:
        await registry.connect("nope")
    assert "not found in config" in str(exc_info.value)


@pytest.mark.asyncio
async def test_connect_disabled_server_fails(fake_connect):
    registry = ExternalMCPRegistry({"git": config(disabled=True)})
    with pytest.raises(MCPConnectionError) as exc_info:
        await registry.connect("git")
    assert "disabled" in str(exc_info.value)
    assert not registry.is_connected("git")


@pytest.mark.asyncio
async def test_reconnect_closes_previous_connection(fake_connect):
    registry = ExternalMCPRegistry({"git": config()})
    first = await registry.connect("git")
    fake_connect.clear()
    second = await registry.connect("git")

    assert first is not second
    assert first.closed
    assert registry.get_client("git") is second


@pytest.mark.asyncio
async def test_connect_all_is_best_effort(fake_connect):
    """One broken server does not stop the others; disabled ones are skipped."""
    registry = ExternalMCPRegistry({
        "git": config(),
        "broken": config(command="broken"),
        "off": config(disabled=True),
        "fs": config(),
    })

    results = await registry.connect_all()

    assert [r.name for r in results] == ["broken", "fs", "git"]
    by_name = {r.name: r for r in results}
    assert not by_name["broken"].ok
    assert "failed to spawn" in by_name["broken"].error
    assert by_name["git"].ok and by_name["git"].tool_count == 1
    assert registry.is_connected("git") and registry.is_connected("fs")
    assert not registry.is_connected("broken")
    assert not registry.is_connected("off")


@pytest.mark.asyncio
async def test_catalog_lists_namespaced_tools(fake_connect):
    registry = ExternalMCPRegistry({"git": config()})
    fake_connect["git"] = FakeMCPClient("git", [
        make_tool("status", "Show status", {"type": "object", "properties": {}}),
        make_tool("log"),
    ])
    await registry.connect("git")

    catalog = registry.catalog()

    assert [tool.name for tool in catalog] == ["external__git__status", "external__git__log"]
    assert catalog[0].description == "Show status"
    assert catalog[1].description == ""
    assert catalog[0].input_schema == {"type": "object", "properties": {}}
    assert registry.catalog() == catalog


@pytest.mark.asyncio
async def test_catalog_names_route_back_to_their_server(fake_connect):
    registry = ExternalMCPRegistry({"git": config(), "fs": config()})
    await registry.connect_all()

    for tool in registry.catalog():
        assert await registry.call_tool(tool.name, {}) == "clean"
    assert len(fake_connect["git"].calls) == 1
    assert len(fake_connect["fs"].calls) == 1


@pytest.mark.asyncio
async def test_close_all_closes_every_client(fake_connect):
    registry = ExternalMCPRegistry({"git": config(), "fs": config()})
    await registry.connect_all()

    await registry.close_all()

    assert all(client.closed for client in fake_connect.values())
    assert registry.catalog() == []


@pytest.mark.asyncio
async def test_registry_with_real_server_process(fake_server_config):
    """End to end: spawn, list, call through a namespaced name, close."""
    registry = ExternalMCPRegistry({"fake": fake_server_config()})
    try:
        results = await registry.connect_all()
        assert results[0].ok and results[0].tool_count == 4
        assert "external__fake__echo" in [tool.name for tool in registry.catalog()]

        result = await registry.call_tool("external__fake__echo", {"text": "hi"})
        assert result == "hi\ndone"
    finally:
        await registry.close_all()
