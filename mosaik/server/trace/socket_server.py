"""Broadcasts execution trace events to connected editors as `trace` messages."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import socketio

from .trace_emitter import global_tracer
from .trace_types import TraceEvent

logger = logging.getLogger(__name__)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins="*")


def _broadcast(event: TraceEvent) -> None:
    # the executor fires synchronously; with no running loop nobody is listening
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return
    loop.create_task(sio.emit("trace", event))


global_tracer.on_trace(_broadcast)


@sio.event
async def connect(sid: str, environ: dict) -> None:
    logger.info("Editor %s subscribed to execution traces", sid)


@sio.event
async def disconnect(sid: str) -> None:
    logger.info("Editor %s unsubscribed", sid)


def create_socket_app(fastapi_app: Any) -> socketio.ASGIApp:
    return socketio.ASGIApp(sio, other_asgi_app=fastapi_app)
