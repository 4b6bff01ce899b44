"""
FastAPI + Socket.IO server.

Start with:
    python -m mosaik.server.main

Or via uvicorn directly:
    uvicorn mosaik.server.main:socket_app --port 3001 --reload
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mosaik import __version__
from mosaik.server.routes.graph_routes import router
from mosaik.server.state import graph_state
from mosaik.server.trace.socket_server import create_socket_app

logging.basicConfig(
    level=graph_state.settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await graph_state.aclose()


app = FastAPI(title="Mosaik API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Wrap with Socket.IO ASGI layer
# ---------------------------------------------------------------------------

# socket_app is the top-level ASGI app passed to uvicorn.
# Socket.IO connections are handled at the root; all other requests are
# forwarded to the inner FastAPI app.
socket_app = create_socket_app(app)

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mosaik.server.main:socket_app",
        host=graph_state.settings.host,
        port=graph_state.settings.port,
        log_level=graph_state.settings.log_level.lower(),
    )
