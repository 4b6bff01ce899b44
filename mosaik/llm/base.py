"""
Provider capability consumed by ModelExecution.

    generate(model_name, messages, thinking) -> async iterator of ChatChunk

`generate` performs the request and only returns once the provider accepted
it; transport, auth and non-2xx failures raise ProviderTransportError before
any chunk is produced.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

from ..core.Node import ChatMessage


@dataclass
class ChatChunk:
    content: str = ""
    thinking: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.content and not self.thinking


class LLMProvider(ABC):
    default_model: str = ""

    @abstractmethod
    async def generate(self,
                       model_name: Optional[str],
                       messages: List[ChatMessage],
                       thinking: Optional[bool] = None) -> AsyncIterator[ChatChunk]:
        ...

    @abstractmethod
    async def available_models(self) -> List[str]:
        ...

    async def aclose(self) -> None:
        pass
