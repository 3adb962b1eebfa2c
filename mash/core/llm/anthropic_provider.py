"""
Anthropic Messages API provider.

Sends the whole conversation plus the tool catalog in one POST to
``{base_url}/v1/messages`` and decodes the returned content blocks. Works
with any endpoint that speaks the same wire format.
"""

import time
from typing import Any, Dict, Optional, Sequence

import httpx
import structlog
from pydantic import ValidationError

from mash.core.exceptions import TransportError

from .base import AssistantTurn, LLMProvider, Message, ToolDefinition

logger = structlog.get_logger(__name__)

API_VERSION = "2023-06-01"
DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_MAX_TOKENS = 131072
DEFAULT_TIMEOUT = 600.0


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API transport."""

    def __init__(
        self,
        api_key: str,
        model: str,
        system: str = "",
        base_url: str = DEFAULT_BASE_URL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """Initialize the provider.

        Args:
            api_key: Credential forwarded in the x-api-key header
            model: Model identifier
            system: System prompt sent with every request
            base_url: API root, without the /v1/messages path
            max_tokens: Token budget per response
            timeout: Request timeout in seconds
            http_client: Optional shared client; one is created per call otherwise
        """
        self.api_key = api_key
        self.model = model
        self.system = system
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._http_client = http_client

    @property
    def api_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/messages"

    def prepare_headers(self) -> Dict[str, str]:
        """Request headers carrying the credential and protocol version."""
        return {
            "x-api-key": self.api_key,
            "anthropic-version": API_VERSION,
            "content-type": "application/json",
        }

    def prepare_request(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition]
    ) -> Dict[str, Any]:
        """Build the request payload."""
        return {
            "model": self.model,
            "system": self.system,
            "max_tokens": self.max_tokens,
            "messages": [message.to_dict() for message in messages],
            "tools": [tool.to_dict() for tool in tools],
        }

    async def send(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition]
    ) -> AssistantTurn:
        """Run one request/response round trip.

        No retries: any failure surfaces immediately as TransportError.
        """
        payload = self.prepare_request(messages, tools)
        headers = self.prepare_headers()

        logger.info("Calling chat API", model=self.model, messages=len(messages), tools=len(tools))
        start_time = time.time()

        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.api_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Error communicating with chat API", error=str(e))
            raise TransportError(str(e) or type(e).__name__, cause=e) from e

        body = response.text
        if not response.is_success:
            logger.error("Chat API returned an error", status=response.status_code)
            raise TransportError("HTTP error", status_code=response.status_code, body=body)

        try:
            turn = AssistantTurn.model_validate_json(body)
        except ValidationError as e:
            logger.error("Failed to decode chat API response", error=str(e))
            raise TransportError(f"failed to decode response: {e}", cause=e) from e

        logger.info(
            "Chat API call completed",
            duration=round(time.time() - start_time, 2),
            blocks=len(turn.content),
            stop_reason=turn.stop_reason,
        )
        return turn

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
