"""
Client for the Anthropic Messages API with server-sent events.

Only `data: ` lines are parsed; of those, only `content_block_delta` events
carrying a `text_delta` or `thinking_delta` produce chunks.  Everything else
(`event:` lines, pings, message_start/stop, ...) is skipped.
"""
from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..core.Errors import MalformedStreamFrame, ProviderTransportError
from ..core.Node import DEFAULT_ANTHROPIC_MODEL, ChatMessage
from .base import ChatChunk, LLMProvider
from .stream import open_stream, stream_frames

logger = logging.getLogger(__name__)

DEFAULT_ANTHROPIC_URL = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 32000
THINKING_BUDGET_TOKENS = 2000

KNOWN_MODELS = [
    "claude-sonnet-4-20250514",
    "claude-opus-4-20250514",
    "claude-3-5-haiku-20241022",
]

DATA_PREFIX = "data: "


def parse_anthropic_line(line: str) -> Optional[ChatChunk]:
    if not line.startswith(DATA_PREFIX):
        return None
    try:
        event = json.loads(line[len(DATA_PREFIX):])
        event_type = event["type"]
    except (ValueError, KeyError, TypeError) as exc:
        raise MalformedStreamFrame(f"Unparseable Anthropic event {line[:80]!r}") from exc

    if event_type != "content_block_delta":
        return None
    delta = event.get("delta")
    if not isinstance(delta, dict):
        return None

    delta_type = delta.get("type")
    if delta_type == "text_delta":
        text = delta.get("text")
        return ChatChunk(content=text) if text else None
    elif delta_type == "thinking_delta":
        thinking = delta.get("thinking")
        return ChatChunk(thinking=thinking) if thinking else None
    return None


class AnthropicClient(LLMProvider):
    def __init__(self, api_key: Optional[str] = None, base_url: str = DEFAULT_ANTHROPIC_URL,
                 default_model: str = DEFAULT_ANTHROPIC_MODEL,
                 client: Optional[httpx.AsyncClient] = None, timeout: float = 300.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    def _request_body(self, model_name: Optional[str], messages: List[ChatMessage],
                      thinking: Optional[bool]) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": model_name or self.default_model,
            # the API does not accept our local thinking transcript on past turns
            "messages": [{"role": m.role.value, "content": m.content} for m in messages],
            "stream": True,
            "max_tokens": MAX_TOKENS,
        }
        if thinking:
            body["thinking"] = {"type": "enabled", "budget_tokens": THINKING_BUDGET_TOKENS}
        return body

    async def generate(self, model_name: Optional[str], messages: List[ChatMessage],
                       thinking: Optional[bool] = None) -> AsyncIterator[ChatChunk]:
        if not self.api_key:
            raise ProviderTransportError("Anthropic API key not configured")

        url = f"{self.base_url}/messages"
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        logger.info("Sending request to Anthropic API")
        response = await open_stream(self._client, url, self._request_body(model_name, messages, thinking),
                                     "Anthropic", headers=headers)
        return stream_frames(response, parse_anthropic_line, "Anthropic")

    async def available_models(self) -> List[str]:
        # no public listing endpoint is used; these are the supported models
        return list(KNOWN_MODELS)

    async def aclose(self) -> None:
        await self._client.aclose()
