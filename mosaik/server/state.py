"""
GraphState — the single owner of the live workflow.

Holds the graph, the canvas transform, the pointer controller and the
executor, and builds the default Prompt -> Model graph on startup so the UI
has something to display on first load.  Routes reach the workflow only
through the module-level `graph_state` instance.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from mosaik.config import Settings
from mosaik.core.Canvas import CanvasState
from mosaik.core.Executor import Executor
from mosaik.core.Interaction import PointerController
from mosaik.core.Types import ProviderType
from mosaik.core.Workflow import WorkflowGraph
from mosaik.llm.anthropic import AnthropicClient
from mosaik.llm.base import LLMProvider
from mosaik.llm.ollama import OllamaClient
from mosaik.server.serializers.graph_serializer import deserialize_workflow, serialize_workflow
from mosaik.server.trace.trace_emitter import global_tracer

logger = logging.getLogger(__name__)


class GraphState:
    """Holds the workflow graph plus everything that operates on it."""

    def __init__(self, settings: Optional[Settings] = None,
                 graph: Optional[WorkflowGraph] = None) -> None:
        self.settings = settings or Settings.from_env()
        self.canvas = CanvasState()
        self._providers: Dict[ProviderType, LLMProvider] = {}
        self._attach(graph if graph is not None else WorkflowGraph.bootstrap())

    def _attach(self, graph: WorkflowGraph) -> None:
        self.graph = graph
        self.pointer = PointerController(graph, self.canvas)
        self.executor = Executor(
            graph,
            self.provider,
            listener=global_tracer.fire,
            channel_capacity=self.settings.channel_capacity,
        )

    # ── Providers ───────────────────────────────────────────────────────────

    def provider(self, provider_type: ProviderType) -> LLMProvider:
        """Provider clients are created lazily and shared across runs."""
        client = self._providers.get(provider_type)
        if client is None:
            if provider_type == ProviderType.ANTHROPIC:
                client = AnthropicClient(
                    api_key=self.settings.anthropic_api_key,
                    base_url=self.settings.anthropic_url,
                    timeout=self.settings.request_timeout,
                )
            else:
                client = OllamaClient(
                    base_url=self.settings.ollama_url,
                    timeout=self.settings.request_timeout,
                )
            self._providers[provider_type] = client
        return client

    def set_provider(self, provider_type: ProviderType, client: LLMProvider) -> None:
        self._providers[provider_type] = client

    async def aclose(self) -> None:
        for client in self._providers.values():
            await client.aclose()
        self._providers.clear()

    # ── Persistence ─────────────────────────────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        return serialize_workflow(self.graph)

    def load(self, data: Dict[str, Any]) -> WorkflowGraph:
        """Replace the whole graph with a deserialized one."""
        graph = deserialize_workflow(data)
        # nothing is in flight for a graph that was just loaded
        for node in graph.nodes.values():
            node.is_executing = False
        self._attach(graph)
        logger.info("Loaded workflow with %d nodes and %d connections",
                    len(graph.nodes), len(graph.connections))
        return graph

    def reset(self) -> WorkflowGraph:
        self.canvas = CanvasState()
        self._attach(WorkflowGraph.bootstrap())
        return self.graph


# Module-level singleton used by all route handlers
graph_state = GraphState()
