"""
InputAggregator — derives a node's `input` from the outputs wired into it.

Fan-in order is purely visual: sources are sorted top-to-bottom by their
position_y, ties broken left-to-right by position_x (and finally by connection
id so equal positions stay deterministic).  Outputs are joined with a blank
line.  A target with no contributing source gets `input = None`.

Propagation is one hop per trigger.  Multi-hop effects come from the
scheduler re-executing each dirty node in dependency order.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .GraphPrimitives import Connection
from .Node import Node

logger = logging.getLogger(__name__)

INPUT_SEPARATOR = "\n\n"


def _visual_key(entry: Tuple[Connection, Node]):
    conn, node = entry
    return (node.position_y, node.position_x, conn.id)


class InputAggregator:
    def __init__(self, nodes: Dict[int, Node], connections: Dict[int, Connection]):
        # Shared with the owning WorkflowGraph; never mutated structurally here.
        self.nodes = nodes
        self.connections = connections

    def sources(self, target_id: int, with_output_only: bool = False) -> List[Tuple[Connection, Node]]:
        """(connection, source node) pairs feeding `target_id`, in visual order."""
        entries: List[Tuple[Connection, Node]] = []
        for conn in self.connections.values():
            if conn.to_node_id != target_id:
                continue
            source = self.nodes.get(conn.from_node_id)
            if source is None:
                continue
            if with_output_only and source.output is None:
                # no output yet: skipped, not treated as empty string
                continue
            entries.append((conn, source))
        entries.sort(key=_visual_key)
        return entries

    def aggregate(self, target_id: int) -> Optional[str]:
        outputs = [node.output for _, node in self.sources(target_id, with_output_only=True)]
        if not outputs:
            return None
        return INPUT_SEPARATOR.join(outputs)

    def recompute(self, target_id: int) -> Optional[str]:
        target = self.nodes.get(target_id)
        if target is None:
            return None
        target.input = self.aggregate(target_id)
        return target.input

    def propagate(self, source_id: int) -> List[int]:
        """Recompute the direct targets of `source_id` and mark them dirty."""
        target_ids: List[int] = []
        for conn in self.connections.values():
            if conn.from_node_id == source_id and conn.to_node_id not in target_ids:
                target_ids.append(conn.to_node_id)

        for target_id in target_ids:
            self.recompute(target_id)
            target = self.nodes.get(target_id)
            if target is not None:
                target.needs_execution = True
        return target_ids

    def input_order_number(self, node_id: int, target_id: int) -> Optional[int]:
        """1-based rank of `node_id` among the sources of a multi-input target."""
        entries = self.sources(target_id)
        if len(entries) <= 1:
            return None
        for rank, (_, node) in enumerate(entries, start=1):
            if node.id == node_id:
                return rank
        return None
