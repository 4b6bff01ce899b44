"""
Client for a local Ollama server (`/api/chat`, newline-delimited JSON).

Each streamed line looks like

    {"message": {"role": "assistant", "content": "Hel", "thinking": "..."}, "done": false}

and the final line carries `"done": true`.
"""
from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, List, NamedTuple, Optional

import httpx

from ..core.Errors import MalformedStreamFrame, ProviderTransportError
from ..core.Node import ChatMessage
from .base import ChatChunk, LLMProvider
from .stream import open_stream, stream_frames

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class OllamaFrame(NamedTuple):
    chunk: ChatChunk
    done: bool


def parse_ollama_line(line: str) -> Optional[OllamaFrame]:
    if not line:
        return None
    try:
        data = json.loads(line)
        message = data["message"]
        chunk = ChatChunk(
            content=message.get("content") or "",
            thinking=message.get("thinking") or None,
        )
        done = bool(data.get("done", False))
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise MalformedStreamFrame(f"Unparseable Ollama line {line[:80]!r}") from exc
    return OllamaFrame(chunk, done)


def ollama_message(message: ChatMessage) -> Dict[str, Any]:
    payload = {"role": message.role.value, "content": message.content}
    if message.thinking is not None:
        payload["thinking"] = message.thinking
    return payload


class OllamaClient(LLMProvider):
    def __init__(self, base_url: str = DEFAULT_OLLAMA_URL, default_model: str = "",
                 client: Optional[httpx.AsyncClient] = None, timeout: float = 300.0):
        self.base_url = base_url.rstrip("/")
        self.default_model = default_model
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    async def generate(self, model_name: Optional[str], messages: List[ChatMessage],
                       thinking: Optional[bool] = None) -> AsyncIterator[ChatChunk]:
        url = f"{self.base_url}/api/chat"
        body: Dict[str, Any] = {
            "model": model_name or self.default_model,
            "messages": [ollama_message(m) for m in messages],
            "stream": True,
        }
        if thinking is not None:
            body["think"] = thinking

        logger.info("Sending request to Ollama API at %s", url)
        response = await open_stream(self._client, url, body, "Ollama")
        return self._chunks(response)

    async def _chunks(self, response: httpx.Response) -> AsyncIterator[ChatChunk]:
        frames = stream_frames(response, parse_ollama_line, "Ollama")
        try:
            async for frame in frames:
                if not frame.chunk.is_empty():
                    yield frame.chunk
                if frame.done:
                    return
        finally:
            await frames.aclose()

    async def available_models(self) -> List[str]:
        url = f"{self.base_url}/api/tags"
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            models = response.json().get("models") or []
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderTransportError(f"Failed to fetch Ollama models: {exc}") from exc
        return [m["name"] for m in models if isinstance(m, dict) and isinstance(m.get("name"), str)]

    async def aclose(self) -> None:
        await self._client.aclose()
