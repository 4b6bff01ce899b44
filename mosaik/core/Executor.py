"""
ExecutionScheduler — decides which model nodes must run, in what order, and
drives each one through ModelExecution.

Eligible nodes are the Model nodes with `needs_execution` set.  Scheduling
edges exist only between eligible nodes; anything else a node reads comes
from the InputAggregator snapshot of current outputs.

Ordering is Kahn's algorithm by tiers.  A cycle among eligible nodes is not
an error: the run executes everything reachable and the cyclic nodes are
skipped for this run.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from .Errors import NodeBusyError, WorkflowError
from .ModelExecution import DEFAULT_CHANNEL_CAPACITY, ModelExecution, TraceListener
from .Node import ModelPayload
from .Types import ProviderType
from .Workflow import WorkflowGraph
from ..llm.base import LLMProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ProviderType], LLMProvider]


def execution_order(graph: WorkflowGraph) -> List[int]:
    """Dependency-respecting order of the eligible model nodes (partial on cycles)."""
    eligible: Set[int] = {
        node_id for node_id, node in graph.nodes.items()
        if node.isModel() and node.needs_execution
    }

    dependencies: Dict[int, Set[int]] = {node_id: set() for node_id in eligible}
    for conn in graph.connections.values():
        if conn.to_node_id in eligible and conn.from_node_id in eligible:
            dependencies[conn.to_node_id].add(conn.from_node_id)

    result: List[int] = []
    remaining = dependencies
    while remaining:
        ready = sorted(node_id for node_id, deps in remaining.items() if not deps)
        if not ready:
            # cycle: return what we have
            break

        for node_id in ready:
            result.append(node_id)
            del remaining[node_id]

        for deps in remaining.values():
            deps.difference_update(ready)

    return result


@dataclass
class RunReport:
    completed: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)
    skipped: List[int] = field(default_factory=list)


class Executor:
    def __init__(self, graph: WorkflowGraph, provider_factory: ProviderFactory,
                 listener: Optional[TraceListener] = None,
                 channel_capacity: int = DEFAULT_CHANNEL_CAPACITY):
        self.graph = graph
        self.provider_factory = provider_factory
        self.listener = listener
        self.model_execution = ModelExecution(graph, channel_capacity, listener)

    def _fire(self, payload) -> None:
        if self.listener is not None:
            self.listener(payload)

    def execution_order(self) -> List[int]:
        return execution_order(self.graph)

    async def run(self) -> RunReport:
        """Execute every dirty model node, one at a time, in dependency order."""
        order = self.execution_order()
        eligible = [
            node_id for node_id in self.graph.node_ids()
            if self.graph.nodes[node_id].isModel() and self.graph.nodes[node_id].needs_execution
        ]
        report = RunReport()
        for node_id in eligible:
            if node_id not in order:
                logger.warning("Node %s is part of a dependency cycle; skipping it this run", node_id)
                report.skipped.append(node_id)

        self._fire({"type": "EXEC_START", "order": list(order)})
        for node_id in order:
            if node_id not in self.graph.nodes:
                # deleted while an earlier node was streaming
                report.skipped.append(node_id)
                continue
            try:
                await self.execute_node(node_id)
            except NodeBusyError as exc:
                logger.warning("%s; skipping it this run", exc)
                report.skipped.append(node_id)
            except WorkflowError as exc:
                report.failed[node_id] = str(exc)
            else:
                report.completed.append(node_id)

        self._fire({
            "type": "EXEC_DONE",
            "completed": list(report.completed),
            "failed": {str(k): v for k, v in report.failed.items()},
            "skipped": list(report.skipped),
        })
        return report

    async def execute_node(self, node_id: int) -> str:
        """Run one model node to completion and return its response text."""
        node = self.graph.get_node(node_id)
        payload = node.payload
        if not isinstance(payload, ModelPayload):
            raise WorkflowError(f"Node {node_id} is not a model node")
        if node.is_executing:
            raise NodeBusyError(node_id)

        node.is_executing = True
        self._fire({"type": "NODE_RUNNING", "nodeId": node_id})
        t0 = time.time()
        try:
            messages = node.prepare_prompt()
            provider = self.provider_factory(payload.provider)
            output = await self.model_execution.run(
                node_id,
                provider,
                messages,
                model_name=payload.model_name or None,
                thinking=payload.thinking,
            )
        except WorkflowError as exc:
            self.graph.finish_execution(node_id, succeeded=False)
            logger.error("Failed to execute node %s: %s", node_id, exc)
            self._fire({"type": "NODE_ERROR", "nodeId": node_id, "error": str(exc)})
            raise
        except BaseException:
            # cancellation included
            self.graph.finish_execution(node_id, succeeded=False)
            raise

        self.graph.finish_execution(node_id, succeeded=True)
        self._fire({
            "type": "NODE_DONE",
            "nodeId": node_id,
            "durationMs": round((time.time() - t0) * 1000, 1),
        })
        return output

    async def send_message(self, node_id: int, content: str) -> str:
        """Chat send: append a user turn to a model node and execute it immediately."""
        node = self.graph.get_node(node_id)
        if node.is_executing:
            raise NodeBusyError(node_id)
        self.graph.append_user_message(node_id, content)
        return await self.execute_node(node_id)
