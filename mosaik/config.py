"""
Runtime settings, read from the environment.

A `.env` file in the working directory (or the path in MOSAIK_ENV_FILE) is
loaded first, so provider URLs and ANTHROPIC_API_KEY need no manual export.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .llm.anthropic import DEFAULT_ANTHROPIC_URL
from .llm.ollama import DEFAULT_OLLAMA_URL


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


@dataclass
class Settings:
    ollama_url: str = DEFAULT_OLLAMA_URL
    anthropic_url: str = DEFAULT_ANTHROPIC_URL
    anthropic_api_key: Optional[str] = None
    request_timeout: float = 300.0
    channel_capacity: int = 100
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        if load_dotenv_file:
            load_dotenv(os.environ.get("MOSAIK_ENV_FILE") or None)
        return cls(
            ollama_url=os.environ.get("MOSAIK_OLLAMA_URL", DEFAULT_OLLAMA_URL),
            anthropic_url=os.environ.get("MOSAIK_ANTHROPIC_URL", DEFAULT_ANTHROPIC_URL),
            anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY") or None,
            request_timeout=_env_float("MOSAIK_REQUEST_TIMEOUT", 300.0),
            channel_capacity=_env_int("MOSAIK_CHANNEL_CAPACITY", 100),
            host=os.environ.get("MOSAIK_HOST", "0.0.0.0"),
            port=_env_int("MOSAIK_PORT", 3001),
            log_level=os.environ.get("MOSAIK_LOG_LEVEL", "INFO").upper(),
        )
