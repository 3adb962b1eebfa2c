"""Tests for JSON-RPC message framing and matching."""

import json

from mash.core.protocol.mcp_constants import MCPMethod
from mash.core.protocol.mcp_protocol import MCPNotification, MCPRequest, match_response, parse_message_line


def test_request_is_one_json_line():
    line = MCPRequest(id=7, method=MCPMethod.LIST_TOOLS, params={}).to_line()
    assert line.endswith("\n")
    assert "\n" not in line[:-1]
    assert json.loads(line) == {"jsonrpc": "2.0", "id": 7, "method": "tools/list", "params": {}}


def test_notification_has_no_id():
    data = json.loads(MCPNotification(method=MCPMethod.INITIALIZED, params={}).to_line())
    assert data == {"jsonrpc": "2.0", "method": "notifications/initialized", "params": {}}


def test_parse_skips_noise():
    assert parse_message_line("") is None
    assert parse_message_line("starting server...") is None
    assert parse_message_line("[1, 2]") is None
    assert parse_message_line('{"jsonrpc": "2.0", "id": 1}') == {"jsonrpc": "2.0", "id": 1}


def test_match_response_by_id():
    assert match_response({"jsonrpc": "2.0", "method": "notifications/message"}, 1) is None
    assert match_response({"jsonrpc": "2.0", "id": 2, "result": {}}, 1) is None
    assert match_response({"jsonrpc": "2.0", "id": True, "result": {}}, 1) is None

    response = match_response({"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}, 1)
    assert response is not None and not response.is_error
    assert response.result == {"ok": True}

    error = match_response({"jsonrpc": "2.0", "id": 1, "error": {"code": -1, "message": "bad"}}, 1)
    assert error is not None and error.is_error
