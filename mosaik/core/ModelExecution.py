"""
ModelExecution — drives one model call and streams it into the graph.

The provider stream is drained by a producer task that forwards every chunk
through a bounded FIFO queue.  The graph owner is the only consumer and
applies each chunk as one serialized mutation:

    producer task ──► asyncio.Queue(maxsize=N) ──► owner: graph.apply_chunk()

A failure raised by the stream travels through the same queue, so chunks that
arrived before it are still applied in order.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, TYPE_CHECKING

from .Errors import ProviderTransportError, WorkflowError
from .Node import ChatMessage

if TYPE_CHECKING:
    from ..llm.base import ChatChunk, LLMProvider
    from .Workflow import WorkflowGraph

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_CAPACITY = 100

TraceListener = Callable[[Dict[str, Any]], None]

# End-of-stream marker put on the queue by the producer
_END = object()


class ModelExecution:
    def __init__(self, graph: "WorkflowGraph", channel_capacity: int = DEFAULT_CHANNEL_CAPACITY,
                 listener: Optional[TraceListener] = None):
        self.graph = graph
        self.channel_capacity = channel_capacity
        self.listener = listener

    def _fire(self, payload: Dict[str, Any]) -> None:
        if self.listener is not None:
            self.listener(payload)

    async def run(self, node_id: int, provider: "LLMProvider", messages: List[ChatMessage],
                  model_name: Optional[str] = None, thinking: Optional[bool] = None) -> str:
        """
        Send `messages` and stream the reply into node `node_id`.  Returns the
        full response text.  Raises ProviderTransportError when the request
        is refused or the stream breaks; a partial assistant turn is removed.
        """
        try:
            stream = await provider.generate(model_name, messages, thinking)
        except WorkflowError:
            raise
        except Exception as exc:
            logger.exception("Model request failed")
            raise ProviderTransportError(f"Model request failed: {exc}") from exc

        queue: asyncio.Queue = asyncio.Queue(maxsize=self.channel_capacity)
        producer = asyncio.create_task(self._produce(stream, queue))

        running_output = ""
        turn_open = False
        try:
            while True:
                item = await queue.get()
                if item is _END:
                    break
                if isinstance(item, BaseException):
                    raise item

                chunk: "ChatChunk" = item
                if not turn_open:
                    self.graph.begin_assistant_turn(node_id)
                    turn_open = True
                if chunk.content:
                    running_output += chunk.content
                # a node deleted mid-flight turns this into a no-op
                self.graph.apply_chunk(node_id, chunk.thinking, chunk.content, running_output)
                self._fire({
                    "type": "NODE_OUTPUT",
                    "nodeId": node_id,
                    "content": chunk.content,
                    "thinking": chunk.thinking,
                })
        except BaseException:
            if turn_open:
                self.graph.discard_assistant_turn(node_id)
            raise
        finally:
            if not producer.done():
                producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)

        return running_output

    async def _produce(self, stream: AsyncIterator["ChatChunk"], queue: asyncio.Queue) -> None:
        try:
            async for chunk in stream:
                await queue.put(chunk)
        except WorkflowError as exc:
            await queue.put(exc)
        except Exception as exc:
            logger.exception("Model stream failed")
            await queue.put(ProviderTransportError(f"Model stream failed: {exc}"))
        else:
            await queue.put(_END)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
