"""
WorkflowGraph — the single owner of nodes, connections and the transient
interaction state (selection, node drag, connection drawing).

All mutation goes through these methods so the invariants live in one place:

  * node and connection ids are unique and allocated from monotonically
    increasing counters;
  * no connection is a self-loop;
  * deleting a node removes every connection touching it;
  * a target's `input` is always re-derived (InputAggregator) after the
    connections or source outputs feeding it change.

The graph is single-writer and does no locking of its own.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .Canvas import CanvasState
from .ConnectionDrawing import ConnectionDrawingMachine
from .Errors import NodeNotFoundError, SelfConnectionError, WorkflowError
from .GraphPrimitives import Connection, ConnectionDrawingState
from .InputAggregator import InputAggregator
from .Node import (
    EXPORT_FILE_TYPES,
    ChatMessage,
    FileExportPayload,
    FileImportPayload,
    ModelPayload,
    Node,
    default_layout,
    default_payload,
)
from .Types import MessageRole, NodeKind, ProviderType

logger = logging.getLogger(__name__)


class WorkflowGraph:
    def __init__(self):
        self.nodes: Dict[int, Node] = {}
        self.connections: Dict[int, Connection] = {}
        self.next_node_id = 0
        self.next_connection_id = 0
        self.selected_node_id: Optional[int] = None
        self.dragging_node_id: Optional[int] = None

        self.aggregator = InputAggregator(self.nodes, self.connections)
        self.drawing = ConnectionDrawingMachine(self)

    @classmethod
    def bootstrap(cls) -> "WorkflowGraph":
        """Default graph: one Prompt feeding one Model."""
        graph = cls()
        prompt_id = graph.add_node(NodeKind.PROMPT, 50.0, 100.0)
        model_id = graph.add_node(NodeKind.MODEL, 400.0, 100.0)
        graph.add_connection(prompt_id, model_id)
        return graph

    def __repr__(self):
        return f"WorkflowGraph(nodes={len(self.nodes)}, connections={len(self.connections)})"

    @property
    def drawing_state(self) -> ConnectionDrawingState:
        return self.drawing.state

    # ── Queries ─────────────────────────────────────────────────────────────

    def get_node(self, node_id: int) -> Node:
        node = self.nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def node_ids(self) -> List[int]:
        return sorted(self.nodes.keys())

    def connections_into(self, node_id: int) -> List[Connection]:
        return sorted(
            (c for c in self.connections.values() if c.to_node_id == node_id),
            key=lambda c: c.id,
        )

    def connections_from(self, node_id: int) -> List[Connection]:
        return sorted(
            (c for c in self.connections.values() if c.from_node_id == node_id),
            key=lambda c: c.id,
        )

    def input_order_number(self, node_id: int, target_id: int) -> Optional[int]:
        return self.aggregator.input_order_number(node_id, target_id)

    def badge_number(self, node_id: int) -> Optional[int]:
        """Order badge for `node_id`: its rank in the first multi-input target it feeds."""
        for conn in self.connections_from(node_id):
            order = self.input_order_number(node_id, conn.to_node_id)
            if order is not None:
                return order
        return None

    # ── Nodes ───────────────────────────────────────────────────────────────

    def add_node(self, kind: NodeKind, position_x: float, position_y: float,
                 provider: ProviderType = ProviderType.OLLAMA) -> int:
        node_id = self.next_node_id
        self.nodes[node_id] = Node.create(node_id, kind, position_x, position_y, provider)
        self.next_node_id += 1
        logger.debug("Added %s node %s at (%s, %s)", kind.value, node_id, position_x, position_y)
        return node_id

    def remove_node(self, node_id: int) -> None:
        if self.nodes.pop(node_id, None) is None:
            raise NodeNotFoundError(node_id)

        removed = [c for c in self.connections.values() if c.touches(node_id)]
        for conn in removed:
            del self.connections[conn.id]

        # surviving targets lose this node's contribution to their input
        for target_id in sorted({c.to_node_id for c in removed if c.to_node_id != node_id}):
            self.aggregator.recompute(target_id)
            self.nodes[target_id].needs_execution = True

        if self.selected_node_id == node_id:
            self.selected_node_id = None
        if self.dragging_node_id == node_id:
            self.dragging_node_id = None
        if self.drawing.active and self.drawing.state.source_node_id == node_id:
            self.drawing.cancel()
        elif self.drawing.state.target_node_id == node_id:
            self.drawing.clear_target()

    def select_node(self, node_id: Optional[int]) -> None:
        if node_id is not None and node_id not in self.nodes:
            raise NodeNotFoundError(node_id)
        self.selected_node_id = node_id

    def toggle_maximize(self, node_id: int) -> bool:
        node = self.get_node(node_id)
        node.is_maximized = not node.is_maximized
        return node.is_maximized

    def reset_node(self, node_id: int) -> None:
        self.get_node(node_id).reset()

    # ── Connections ─────────────────────────────────────────────────────────

    def add_connection(self, from_node_id: int, to_node_id: int) -> int:
        if from_node_id == to_node_id:
            raise SelfConnectionError(from_node_id)
        if from_node_id not in self.nodes:
            raise NodeNotFoundError(from_node_id)
        if to_node_id not in self.nodes:
            raise NodeNotFoundError(to_node_id)

        conn_id = self.next_connection_id
        self.connections[conn_id] = Connection(conn_id, from_node_id, to_node_id)
        self.next_connection_id += 1

        self.aggregator.recompute(to_node_id)
        self.nodes[to_node_id].needs_execution = True
        return conn_id

    def remove_connection_targeting(self, node_id: int) -> Optional[int]:
        """
        Remove the lowest-id connection ending at `node_id` and clear that
        node's input.  Returns the removed connection id.
        """
        candidates = self.connections_into(node_id)
        if not candidates:
            return None
        conn = candidates[0]
        del self.connections[conn.id]
        target = self.nodes.get(node_id)
        if target is not None:
            target.input = None
        return conn.id

    # ── Node dragging ───────────────────────────────────────────────────────

    def start_dragging_node(self, node_id: int, mouse_page_x: float, mouse_page_y: float,
                            canvas: CanvasState) -> None:
        node = self.nodes.get(node_id)
        if node is None:
            return
        self.dragging_node_id = node_id
        world_x, world_y = canvas.page_to_world(mouse_page_x, mouse_page_y)
        node.drag_offset_x = world_x - node.position_x
        node.drag_offset_y = world_y - node.position_y

    def drag_node(self, mouse_page_x: float, mouse_page_y: float, canvas: CanvasState) -> None:
        if self.dragging_node_id is None:
            return
        node = self.nodes.get(self.dragging_node_id)
        if node is None:
            return
        world_x, world_y = canvas.page_to_world(mouse_page_x, mouse_page_y)
        node.position_x = world_x - node.drag_offset_x
        node.position_y = world_y - node.drag_offset_y

    def end_dragging_node(self) -> None:
        dragged_id = self.dragging_node_id
        if dragged_id is None:
            return
        self.dragging_node_id = None
        # position decides fan-in order, so the node's targets must re-aggregate
        self.aggregator.propagate(dragged_id)

    # ── Outputs and payload edits ───────────────────────────────────────────

    def update_node_output(self, node_id: int, new_output: str) -> None:
        """Authoritative output edit (prompt text, imported file content)."""
        node = self.get_node(node_id)
        node.output = new_output
        node.needs_execution = False
        self.aggregator.propagate(node_id)

    def _model_payload(self, node_id: int) -> ModelPayload:
        node = self.get_node(node_id)
        if not isinstance(node.payload, ModelPayload):
            raise WorkflowError(f"Node {node_id} is not a model node")
        return node.payload

    def set_model_name(self, node_id: int, model_name: str) -> None:
        self._model_payload(node_id).model_name = model_name
        self.nodes[node_id].needs_execution = True

    def set_thinking(self, node_id: int, enabled: bool) -> None:
        self._model_payload(node_id).thinking = enabled
        self.nodes[node_id].needs_execution = True

    def set_provider(self, node_id: int, provider: ProviderType) -> None:
        payload = self._model_payload(node_id)
        if payload.provider == provider:
            return
        node = self.nodes[node_id]
        payload.provider = provider
        payload.model_name = default_payload(NodeKind.MODEL, provider).model_name
        node.title = default_layout(NodeKind.MODEL, provider)[0]
        node.needs_execution = True

    def append_user_message(self, node_id: int, content: str) -> None:
        self._model_payload(node_id).messages.append(ChatMessage(MessageRole.USER, content))
        self.nodes[node_id].needs_execution = True

    def set_file_import(self, node_id: int, file_path: str, file_name: str, content: str) -> None:
        node = self.get_node(node_id)
        if not isinstance(node.payload, FileImportPayload):
            raise WorkflowError(f"Node {node_id} is not a file import node")
        node.payload.file_path = file_path
        node.payload.file_name = file_name
        self.update_node_output(node_id, content)

    def set_file_export(self, node_id: int, folder_path: Optional[str] = None,
                        file_name: Optional[str] = None, file_type: Optional[str] = None) -> None:
        node = self.get_node(node_id)
        payload = node.payload
        if not isinstance(payload, FileExportPayload):
            raise WorkflowError(f"Node {node_id} is not a file export node")
        if file_type is not None and file_type not in EXPORT_FILE_TYPES:
            raise WorkflowError(f"Unsupported export file type '{file_type}'")

        if folder_path is not None:
            payload.folder_path = folder_path or None
        if file_name is not None:
            payload.file_name = file_name or None
        if file_type is not None:
            payload.file_type = file_type
        node.needs_execution = True

    # ── Execution hooks (all no-ops for ids deleted mid-flight) ─────────────

    def mark_executing(self, node_id: int, executing: bool = True) -> None:
        node = self.nodes.get(node_id)
        if node is not None:
            node.is_executing = executing

    def begin_assistant_turn(self, node_id: int) -> None:
        node = self.nodes.get(node_id)
        if node is not None and isinstance(node.payload, ModelPayload):
            node.payload.messages.append(ChatMessage(MessageRole.ASSISTANT, ""))

    def apply_chunk(self, node_id: int, thinking: Optional[str], content: str, running_output: str) -> None:
        """Append one stream chunk to the open assistant turn and publish the output."""
        node = self.nodes.get(node_id)
        if node is None or not isinstance(node.payload, ModelPayload):
            return
        if node.payload.messages:
            turn = node.payload.messages[-1]
            if thinking:
                turn.thinking = (turn.thinking or "") + thinking
            if content:
                turn.content += content
        node.output = running_output
        self.aggregator.propagate(node_id)

    def discard_assistant_turn(self, node_id: int) -> None:
        node = self.nodes.get(node_id)
        if node is None or not isinstance(node.payload, ModelPayload):
            return
        messages = node.payload.messages
        if messages and messages[-1].role == MessageRole.ASSISTANT:
            messages.pop()

    def finish_execution(self, node_id: int, succeeded: bool) -> None:
        node = self.nodes.get(node_id)
        if node is None:
            return
        node.is_executing = False
        if succeeded:
            node.needs_execution = False
