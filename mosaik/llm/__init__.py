from .base import ChatChunk, LLMProvider
from .ollama import OllamaClient
from .anthropic import AnthropicClient

__all__ = ["ChatChunk", "LLMProvider", "OllamaClient", "AnthropicClient"]
