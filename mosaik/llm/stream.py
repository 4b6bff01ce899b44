"""
Line framing for streaming provider responses.

Network reads do not respect line boundaries, so bytes are decoded
incrementally (a multi-byte character may straddle two reads) and only
complete lines are handed to the frame parser.
"""
from __future__ import annotations

import codecs
import logging
from typing import Any, AsyncIterable, AsyncIterator, Callable, Dict, List, Optional, TypeVar

import httpx

from ..core.Errors import MalformedStreamFrame, ProviderTransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LineBuffer:
    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, data: bytes) -> List[str]:
        """Add a network read; return the stripped lines it completed."""
        self._buffer += self._decoder.decode(data)
        lines: List[str] = []
        while True:
            line_end = self._buffer.find("\n")
            if line_end < 0:
                break
            lines.append(self._buffer[:line_end].strip())
            self._buffer = self._buffer[line_end + 1:]
        return lines

    def flush(self) -> List[str]:
        """End of stream: return a trailing line that had no newline."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest = self._buffer.strip()
        self._buffer = ""
        return [rest] if rest else []


async def iter_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    buffer = LineBuffer()
    async for data in chunks:
        for line in buffer.feed(data):
            yield line
    for line in buffer.flush():
        yield line


async def iter_frames(lines: AsyncIterable[str],
                      parse: Callable[[str], Optional[T]]) -> AsyncIterator[T]:
    """
    Run `parse` over each line.  Malformed lines are dropped; providers
    interleave keep-alives and event lines with the data we want.
    """
    async for line in lines:
        try:
            frame = parse(line)
        except MalformedStreamFrame as exc:
            logger.debug("Dropping stream frame: %s", exc)
            continue
        if frame is not None:
            yield frame


async def open_stream(client: httpx.AsyncClient, url: str, body: Dict[str, Any],
                      provider_name: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
    """
    POST `body` and return the streaming response once the provider accepted
    it.  Any transport failure or non-2xx status becomes ProviderTransportError.
    """
    request = client.build_request("POST", url, json=body, headers=headers)
    try:
        response = await client.send(request, stream=True)
    except httpx.HTTPError as exc:
        raise ProviderTransportError(f"Failed to send request to {provider_name} API: {exc}") from exc

    if response.is_error:
        try:
            error_text = (await response.aread()).decode("utf-8", errors="replace")
        except httpx.HTTPError:
            error_text = "Unable to read error response"
        finally:
            await response.aclose()
        logger.error("%s API returned error: Status %s, Content: %s",
                     provider_name, response.status_code, error_text)
        raise ProviderTransportError(
            f"{provider_name} API error: Status {response.status_code}: {error_text}",
            status_code=response.status_code,
        )
    return response


async def stream_frames(response: httpx.Response, parse: Callable[[str], Optional[T]],
                        provider_name: str) -> AsyncIterator[T]:
    """Parsed frames of an open streaming response; the response is always closed."""
    try:
        async for frame in iter_frames(iter_lines(response.aiter_bytes()), parse):
            yield frame
    except httpx.HTTPError as exc:
        raise ProviderTransportError(f"{provider_name} stream interrupted: {exc}") from exc
    finally:
        await response.aclose()
