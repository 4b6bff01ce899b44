"""
ConnectionDrawingMachine — the "drag to connect" / "drag to redirect" state
machine.

    Idle ──start()/redirect()──► Drawing ──complete()/cancel()──► Idle

The state itself (ConnectionDrawingState) belongs to the WorkflowGraph,
because finishing a draw mutates the graph's connection set.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Tuple

from .Canvas import CanvasState
from .Errors import NoExecutionTargetError, NodeNotFoundError
from .GraphPrimitives import ConnectionDrawingState
from .Node import port_world_pos
from .Types import PortType

if TYPE_CHECKING:
    from .Workflow import WorkflowGraph

logger = logging.getLogger(__name__)


class ConnectionDrawingMachine:
    def __init__(self, graph: "WorkflowGraph", state: Optional[ConnectionDrawingState] = None):
        self.graph = graph
        self.state = state if state is not None else ConnectionDrawingState()

    @property
    def active(self) -> bool:
        return self.state.active

    def start(self, source_node_id: int, port_page_x: float, port_page_y: float, canvas: CanvasState) -> bool:
        """Idle -> Drawing, anchored at the source's output port."""
        if source_node_id not in self.graph.nodes:
            return False
        anchor = canvas.page_to_world(port_page_x, port_page_y)
        self.state = ConnectionDrawingState(
            active=True,
            source_node_id=source_node_id,
            source_port_world_pos=anchor,
            current_mouse_world_pos=anchor,
            target_node_id=None,
        )
        return True

    def update_mouse(self, mouse_page_x: float, mouse_page_y: float, canvas: CanvasState) -> None:
        if not self.state.active:
            return
        self.state.current_mouse_world_pos = canvas.page_to_world(mouse_page_x, mouse_page_y)

    def set_target(self, node_id: int) -> None:
        if not self.state.active:
            return
        # never highlight the source itself as a candidate
        if node_id == self.state.source_node_id:
            return
        self.state.target_node_id = node_id

    def clear_target(self, node_id: Optional[int] = None) -> None:
        """Clear the hovered target; with `node_id`, only if it is the one hovered."""
        if node_id is not None and self.state.target_node_id != node_id:
            return
        self.state.target_node_id = None

    def complete(self) -> int:
        """
        Pointer-up: connect source -> hovered target and return the connection
        id.  Always ends in Idle, even when the connection is rejected.
        """
        source_id = self.state.source_node_id
        target_id = self.state.target_node_id
        try:
            if target_id is None:
                raise NoExecutionTargetError()
            if source_id not in self.graph.nodes:
                raise NodeNotFoundError(source_id)
            return self.graph.add_connection(source_id, target_id)
        finally:
            self.cancel()

    def cancel(self) -> None:
        self.state = ConnectionDrawingState()

    def redirect(self, target_node_id: int) -> Optional[Tuple[int, int]]:
        """
        Drag from an existing input port: detach the connection ending there
        (lowest connection id when several do) and restart drawing from its
        original source.  Returns (source id, removed connection id), or None
        when nothing is connected to that input.
        """
        candidates = self.graph.connections_into(target_node_id)
        if not candidates:
            return None
        connection = candidates[0]

        source = self.graph.nodes.get(connection.from_node_id)
        if source is None:
            return None

        if self.state.active:
            mouse_pos = self.state.current_mouse_world_pos
        else:
            mouse_pos = port_world_pos(self.graph.nodes[target_node_id], PortType.INPUT)

        self.state = ConnectionDrawingState(
            active=True,
            source_node_id=source.id,
            source_port_world_pos=port_world_pos(source, PortType.OUTPUT),
            current_mouse_world_pos=mouse_pos,
            target_node_id=None,
        )
        removed = self.graph.remove_connection_targeting(target_node_id)
        logger.debug("Redirecting connection %s from node %s", removed, source.id)
        return (source.id, removed)
