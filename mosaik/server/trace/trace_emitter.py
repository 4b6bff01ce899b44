"""
TraceEmitter — fan-out of execution trace events to registered listeners
(the Socket.IO bridge, loggers, tests).

The Executor is handed `global_tracer.fire` as its listener, so every
lifecycle event (EXEC_START, NODE_RUNNING, NODE_OUTPUT, NODE_DONE,
NODE_ERROR, EXEC_DONE) passes through here.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, List

from .trace_types import TraceEvent

logger = logging.getLogger(__name__)

TraceListener = Callable[[TraceEvent], None]


class TraceEmitter:
    def __init__(self) -> None:
        self._listeners: List[TraceListener] = []

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    def on_trace(self, callback: TraceListener) -> None:
        """Register a callback that receives every emitted trace event."""
        self._listeners.append(callback)

    def off_trace(self, callback: TraceListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Emit
    # ------------------------------------------------------------------

    def fire(self, payload: TraceEvent) -> None:
        """Stamp the payload with a millisecond timestamp and broadcast it."""
        if "ts" not in payload:
            payload["ts"] = _now_ms()
        for cb in list(self._listeners):
            try:
                cb(payload)
            except Exception:
                # a broken listener must not abort a model run
                logger.exception("Trace listener failed on %s", payload.get("type"))


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

global_tracer = TraceEmitter()


def _now_ms() -> int:
    return int(time.time() * 1000)
