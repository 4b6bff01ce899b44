"""
Pointer handler entry points.

The UI layer forwards raw page-space primitives (coordinates, button, wheel
delta) here; nothing in this module knows about a UI framework's event types.
Handlers that need the UI to do something (open a context menu) return a
MenuRequest describing it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .Canvas import CanvasState, wheel_delta
from .Errors import WorkflowError
from .Node import port_world_pos
from .Types import NodeKind, PointerButton, PortType, ProviderType, WheelDeltaMode
from .Workflow import WorkflowGraph

logger = logging.getLogger(__name__)


@dataclass
class MenuRequest:
    menu: str           # "canvas" (add node) or "node" (delete / reset)
    page_x: float
    page_y: float
    node_id: Optional[int] = None


class PointerController:
    def __init__(self, graph: WorkflowGraph, canvas: CanvasState):
        self.graph = graph
        self.canvas = canvas
        self.menu: Optional[MenuRequest] = None

    # ── Canvas ──────────────────────────────────────────────────────────────

    def canvas_press(self, page_x: float, page_y: float,
                     button: PointerButton = PointerButton.PRIMARY) -> Optional[MenuRequest]:
        if button == PointerButton.SECONDARY:
            self.menu = MenuRequest("canvas", page_x, page_y)
            return self.menu
        if button == PointerButton.PRIMARY:
            self.menu = None
            self.canvas.start_pan(page_x, page_y)
        return None

    def pointer_move(self, page_x: float, page_y: float) -> None:
        if self.graph.drawing.active:
            self.graph.drawing.update_mouse(page_x, page_y, self.canvas)
        elif self.graph.dragging_node_id is not None:
            self.graph.drag_node(page_x, page_y, self.canvas)
        elif self.canvas.dragging:
            self.canvas.pan_to(page_x, page_y)

    def pointer_release(self, page_x: float, page_y: float) -> Optional[MenuRequest]:
        request = None
        drawing = self.graph.drawing
        if drawing.active:
            if drawing.state.target_node_id is None:
                # dropped on empty canvas: offer to add a node there instead
                drawing.cancel()
                request = self.menu = MenuRequest("canvas", page_x, page_y)
            else:
                try:
                    conn_id = drawing.complete()
                    logger.info("Connection %s created", conn_id)
                except WorkflowError as exc:
                    logger.warning("Failed to create connection: %s", exc)

        if self.graph.dragging_node_id is not None:
            self.graph.end_dragging_node()

        self.canvas.end_pan()
        return request

    def wheel(self, page_x: float, page_y: float, delta_y: float,
              mode: WheelDeltaMode = WheelDeltaMode.PIXELS) -> float:
        return self.canvas.zoom_at(page_x, page_y, wheel_delta(delta_y, mode))

    def add_node_from_menu(self, kind: NodeKind, provider: ProviderType = ProviderType.OLLAMA) -> int:
        if self.menu is None:
            raise WorkflowError("No add-node menu is open")
        world_x, world_y = self.canvas.page_to_world(self.menu.page_x, self.menu.page_y)
        self.menu = None
        return self.graph.add_node(kind, world_x, world_y, provider)

    # ── Nodes ───────────────────────────────────────────────────────────────

    def node_press(self, node_id: int, page_x: float, page_y: float,
                   button: PointerButton = PointerButton.PRIMARY) -> Optional[MenuRequest]:
        if button == PointerButton.SECONDARY:
            self.menu = MenuRequest("node", page_x, page_y, node_id)
            return self.menu
        self.menu = None
        self.graph.select_node(node_id)
        self.graph.start_dragging_node(node_id, page_x, page_y, self.canvas)
        return None

    def output_port_press(self, node_id: int) -> bool:
        node = self.graph.get_node(node_id)
        port_page_x, port_page_y = self.canvas.world_to_page(*port_world_pos(node, PortType.OUTPUT))
        return self.graph.drawing.start(node_id, port_page_x, port_page_y, self.canvas)

    def input_port_press(self, node_id: int) -> bool:
        return self.graph.drawing.redirect(node_id) is not None

    def node_hover_enter(self, node_id: int) -> None:
        if self.graph.drawing.active:
            self.graph.drawing.set_target(node_id)

    def node_hover_leave(self, node_id: int) -> None:
        self.graph.drawing.clear_target(node_id)
