"""
Graph serializer — converts a WorkflowGraph into JSON-safe dicts and back.

The wire shape is defined by the pydantic records below; every field of the
graph round-trips, including the id counters, the selection, the node being
dragged and the in-progress connection drawing.  Node payloads are tagged by
`kind` so a record always rebuilds the same payload type.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, model_validator

from mosaik.core.GraphPrimitives import Connection, ConnectionDrawingState
from mosaik.core.Node import (
    DEFAULT_EXPORT_TYPE,
    ChatMessage,
    FileExportPayload,
    FileImportPayload,
    ModelPayload,
    Node,
    NodePayload,
    PromptPayload,
)
from mosaik.core.Types import MessageRole, ProviderType
from mosaik.core.Workflow import WorkflowGraph


# ── Records ───────────────────────────────────────────────────────────────────

class ChatMessageRecord(BaseModel):
    role: MessageRole
    content: str = ""
    thinking: Optional[str] = None


class PromptRecord(BaseModel):
    kind: Literal["Prompt"] = "Prompt"


class FileImportRecord(BaseModel):
    kind: Literal["FileImport"] = "FileImport"
    file_path: Optional[str] = None
    file_name: Optional[str] = None


class FileExportRecord(BaseModel):
    kind: Literal["FileExport"] = "FileExport"
    folder_path: Optional[str] = None
    file_name: Optional[str] = None
    file_type: str = DEFAULT_EXPORT_TYPE


class ModelRecord(BaseModel):
    kind: Literal["Model"] = "Model"
    provider: ProviderType = ProviderType.OLLAMA
    model_name: str = ""
    messages: List[ChatMessageRecord] = Field(default_factory=list)
    thinking: bool = False


PayloadRecord = Annotated[
    Union[PromptRecord, FileImportRecord, FileExportRecord, ModelRecord],
    Field(discriminator="kind"),
]


class NodeRecord(BaseModel):
    id: int
    payload: PayloadRecord
    position_x: float = 0.0
    position_y: float = 0.0
    width: float = 200.0
    height: float = 200.0
    title: str = ""
    input: Optional[str] = None
    output: Optional[str] = None
    drag_offset_x: float = 0.0
    drag_offset_y: float = 0.0
    is_maximized: bool = False
    needs_execution: bool = True
    is_executing: bool = False


class ConnectionRecord(BaseModel):
    id: int
    from_node_id: int
    to_node_id: int


class DrawingStateRecord(BaseModel):
    active: bool = False
    source_node_id: int = 0
    source_port_world_pos: Tuple[float, float] = (0.0, 0.0)
    current_mouse_world_pos: Tuple[float, float] = (0.0, 0.0)
    target_node_id: Optional[int] = None


class WorkflowRecord(BaseModel):
    nodes: List[NodeRecord] = Field(default_factory=list)
    connections: List[ConnectionRecord] = Field(default_factory=list)
    next_node_id: int = 0
    next_connection_id: int = 0
    selected_node_id: Optional[int] = None
    dragging_node_id: Optional[int] = None
    connection_drawing: DrawingStateRecord = Field(default_factory=DrawingStateRecord)

    @model_validator(mode="after")
    def check_graph_rules(self) -> "WorkflowRecord":
        """Apply the same rules the live graph enforces on add_node and add_connection."""
        node_ids = set()
        for n in self.nodes:
            if n.id in node_ids:
                raise ValueError(f"duplicate node id {n.id}")
            node_ids.add(n.id)

        conn_ids = set()
        for c in self.connections:
            if c.id in conn_ids:
                raise ValueError(f"duplicate connection id {c.id}")
            conn_ids.add(c.id)
            if c.from_node_id == c.to_node_id:
                raise ValueError(f"connection {c.id} connects node {c.from_node_id} to itself")
            for end in (c.from_node_id, c.to_node_id):
                if end not in node_ids:
                    raise ValueError(f"connection {c.id} references unknown node {end}")
        return self


# ── Payload conversion ────────────────────────────────────────────────────────

def _payload_record(payload: NodePayload):
    if isinstance(payload, ModelPayload):
        return ModelRecord(
            provider=payload.provider,
            model_name=payload.model_name,
            messages=[
                ChatMessageRecord(role=m.role, content=m.content, thinking=m.thinking)
                for m in payload.messages
            ],
            thinking=payload.thinking,
        )
    if isinstance(payload, FileImportPayload):
        return FileImportRecord(file_path=payload.file_path, file_name=payload.file_name)
    if isinstance(payload, FileExportPayload):
        return FileExportRecord(
            folder_path=payload.folder_path,
            file_name=payload.file_name,
            file_type=payload.file_type,
        )
    return PromptRecord()


def _payload_from_record(record) -> NodePayload:
    if isinstance(record, ModelRecord):
        return ModelPayload(
            provider=record.provider,
            model_name=record.model_name,
            messages=[ChatMessage(m.role, m.content, m.thinking) for m in record.messages],
            thinking=record.thinking,
        )
    if isinstance(record, FileImportRecord):
        return FileImportPayload(file_path=record.file_path, file_name=record.file_name)
    if isinstance(record, FileExportRecord):
        return FileExportPayload(
            folder_path=record.folder_path,
            file_name=record.file_name,
            file_type=record.file_type,
        )
    return PromptPayload()


# ── Public API ────────────────────────────────────────────────────────────────

def workflow_record(graph: WorkflowGraph) -> WorkflowRecord:
    nodes = []
    for node_id in graph.node_ids():
        node = graph.nodes[node_id]
        nodes.append(NodeRecord(
            id=node.id,
            payload=_payload_record(node.payload),
            position_x=node.position_x,
            position_y=node.position_y,
            width=node.width,
            height=node.height,
            title=node.title,
            input=node.input,
            output=node.output,
            drag_offset_x=node.drag_offset_x,
            drag_offset_y=node.drag_offset_y,
            is_maximized=node.is_maximized,
            needs_execution=node.needs_execution,
            is_executing=node.is_executing,
        ))

    drawing = graph.drawing_state
    return WorkflowRecord(
        nodes=nodes,
        connections=[
            ConnectionRecord(id=c.id, from_node_id=c.from_node_id, to_node_id=c.to_node_id)
            for c in sorted(graph.connections.values(), key=lambda c: c.id)
        ],
        next_node_id=graph.next_node_id,
        next_connection_id=graph.next_connection_id,
        selected_node_id=graph.selected_node_id,
        dragging_node_id=graph.dragging_node_id,
        connection_drawing=DrawingStateRecord(
            active=drawing.active,
            source_node_id=drawing.source_node_id,
            source_port_world_pos=drawing.source_port_world_pos,
            current_mouse_world_pos=drawing.current_mouse_world_pos,
            target_node_id=drawing.target_node_id,
        ),
    )


def serialize_workflow(graph: WorkflowGraph) -> Dict[str, Any]:
    return workflow_record(graph).model_dump(mode="json")


def deserialize_workflow(data: Union[Dict[str, Any], WorkflowRecord]) -> WorkflowGraph:
    """Build a fresh WorkflowGraph from a serialized dict (or validated record)."""
    record = data if isinstance(data, WorkflowRecord) else WorkflowRecord.model_validate(data)

    graph = WorkflowGraph()
    for n in record.nodes:
        graph.nodes[n.id] = Node(
            id=n.id,
            payload=_payload_from_record(n.payload),
            position_x=n.position_x,
            position_y=n.position_y,
            width=n.width,
            height=n.height,
            title=n.title,
            input=n.input,
            output=n.output,
            drag_offset_x=n.drag_offset_x,
            drag_offset_y=n.drag_offset_y,
            is_maximized=n.is_maximized,
            needs_execution=n.needs_execution,
            is_executing=n.is_executing,
        )
    for c in record.connections:
        graph.connections[c.id] = Connection(c.id, c.from_node_id, c.to_node_id)

    # counters never step backwards past an id already in use
    graph.next_node_id = max([record.next_node_id] + [n.id + 1 for n in record.nodes])
    graph.next_connection_id = max(
        [record.next_connection_id] + [c.id + 1 for c in record.connections]
    )
    graph.selected_node_id = record.selected_node_id
    graph.dragging_node_id = record.dragging_node_id

    d = record.connection_drawing
    graph.drawing.state = ConnectionDrawingState(
        active=d.active,
        source_node_id=d.source_node_id,
        source_port_world_pos=tuple(d.source_port_world_pos),
        current_mouse_world_pos=tuple(d.current_mouse_world_pos),
        target_node_id=d.target_node_id,
    )
    return graph


def dumps_workflow(graph: WorkflowGraph, indent: Optional[int] = 2) -> str:
    return workflow_record(graph).model_dump_json(indent=indent)


def loads_workflow(text: str) -> WorkflowGraph:
    return deserialize_workflow(WorkflowRecord.model_validate_json(text))
