"""Tests for the loopback HTTP facade."""

import httpx
import pytest
from fastapi.testclient import TestClient

from mash.api.facade import FacadeServer, create_facade_app
from mash.core.external_mcp import registry as registry_module
from mash.core.external_mcp.external_mcp_models import ExternalServerConfig
from mash.core.external_mcp.registry import ExternalMCPRegistry

from fakes import FakeMCPClient, make_tool


@pytest.fixture
def registry(monkeypatch) -> ExternalMCPRegistry:
    client = FakeMCPClient("git", [make_tool("status")], {"status": "On branch main\nnothing to commit"})

    async def connect(name, config):
        return client

    monkeypatch.setattr(registry_module.ExternalMCPClient, "connect", staticmethod(connect))
    return ExternalMCPRegistry({"git": ExternalServerConfig(command="git-mcp")})


@pytest.mark.asyncio
async def test_call_returns_plain_text(registry):
    await registry.connect("git")
    client = TestClient(create_facade_app(registry))

    response = client.post("/mcp/call", json={"server": "git", "tool": "status", "arguments": {"short": True}})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "On branch main\nnothing to commit"
    assert registry.get_client("git").calls == [("status", {"short": True})]


@pytest.mark.asyncio
async def test_arguments_default_to_empty_object(registry):
    await registry.connect("git")
    client = TestClient(create_facade_app(registry))

    response = client.post("/mcp/call", json={"server": "git", "tool": "status"})

    assert response.status_code == 200
    assert registry.get_client("git").calls == [("status", {})]


def test_unconnected_server_is_500_with_error_text(registry):
    client = TestClient(create_facade_app(registry))

    response = client.post("/mcp/call", json={"server": "git", "tool": "status"})

    assert response.status_code == 500
    assert "not connected" in response.text


@pytest.mark.asyncio
async def test_tool_failure_is_500_with_error_text(registry):
    await registry.connect("git")
    client = TestClient(create_facade_app(registry))

    response = client.post("/mcp/call", json={"server": "git", "tool": "push"})

    assert response.status_code == 500
    assert "unknown tool push" in response.text


def test_missing_fields_are_rejected(registry):
    client = TestClient(create_facade_app(registry))
    response = client.post("/mcp/call", json={"tool": "status"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_server_serves_on_loopback(registry):
    await registry.connect("git")
    server = FacadeServer(registry, host="127.0.0.1", port=0)
    await server.start()
    try:
        assert server.bound_port != 0
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{server.base_url}/mcp/call",
                json={"server": "git", "tool": "status"},
            )
        assert response.status_code == 200
        assert response.text.startswith("On branch main")
    finally:
        await server.stop()


@pytest.mark.asyncio
async def test_port_in_use_raises_os_error(registry):
    first = FacadeServer(registry, host="127.0.0.1", port=0)
    await first.start()
    try:
        second = FacadeServer(registry, host="127.0.0.1", port=first.bound_port)
        with pytest.raises(OSError):
            await second.start()
    finally:
        await first.stop()
