"""
Workflow REST routes.

All routes are mounted under /api by main.py.  Unknown node ids map to 404,
every other WorkflowError to 400.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, ValidationError

from mosaik.core.Errors import NodeNotFoundError, WorkflowError
from mosaik.core.Node import render_rect
from mosaik.core.Types import NodeKind, PointerButton, ProviderType, WheelDeltaMode
from mosaik.server.state import graph_state

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(exc: WorkflowError) -> HTTPException:
    if isinstance(exc, NodeNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


# ── Workflow ──────────────────────────────────────────────────────────────────

@router.get("/workflow")
async def get_workflow() -> Dict[str, Any]:
    return graph_state.snapshot()


@router.put("/workflow")
async def load_workflow(body: Dict[str, Any]) -> Dict[str, Any]:
    try:
        graph_state.load(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return graph_state.snapshot()


@router.post("/workflow/reset")
async def reset_workflow() -> Dict[str, Any]:
    graph_state.reset()
    return graph_state.snapshot()


@router.get("/canvas")
async def get_canvas() -> Dict[str, float]:
    canvas = graph_state.canvas
    return {"offsetX": canvas.offset_x, "offsetY": canvas.offset_y, "zoom": canvas.zoom}


# ── Nodes ─────────────────────────────────────────────────────────────────────

class CreateNodeBody(BaseModel):
    kind: NodeKind
    x: float
    y: float
    provider: ProviderType = ProviderType.OLLAMA


@router.post("/nodes", status_code=201)
async def create_node(body: CreateNodeBody) -> Dict[str, Any]:
    node_id = graph_state.graph.add_node(body.kind, body.x, body.y, body.provider)
    node = graph_state.graph.nodes[node_id]
    return {"id": node_id, "kind": node.kind.value, "title": node.title}


@router.delete("/nodes/{node_id}", status_code=204)
async def delete_node(node_id: int) -> Response:
    try:
        graph_state.graph.remove_node(node_id)
    except WorkflowError as exc:
        raise _http_error(exc)
    return Response(status_code=204)


@router.get("/nodes/{node_id}/inputs")
async def get_node_inputs(node_id: int) -> List[Dict[str, Any]]:
    """Upstream sources of a node in aggregation order, with their badge numbers."""
    graph = graph_state.graph
    try:
        graph.get_node(node_id)
    except WorkflowError as exc:
        raise _http_error(exc)
    return [
        {"connectionId": conn.id, "nodeId": src.id, "order": rank}
        for rank, (conn, src) in enumerate(graph.aggregator.sources(node_id), start=1)
    ]


@router.get("/nodes/{node_id}/rect")
async def get_node_rect(node_id: int) -> Dict[str, float]:
    try:
        x, y, w, h = render_rect(graph_state.graph.get_node(node_id))
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"x": x, "y": y, "width": w, "height": h}


@router.post("/nodes/{node_id}/select")
async def select_node(node_id: int) -> Dict[str, Any]:
    try:
        graph_state.graph.select_node(node_id)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"selectedNodeId": node_id}


@router.post("/nodes/{node_id}/maximize")
async def toggle_maximize(node_id: int) -> Dict[str, Any]:
    try:
        maximized = graph_state.graph.toggle_maximize(node_id)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"isMaximized": maximized}


@router.post("/nodes/{node_id}/reset")
async def reset_node(node_id: int) -> Dict[str, Any]:
    try:
        graph_state.graph.reset_node(node_id)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"ok": True}


class OutputBody(BaseModel):
    output: str


@router.put("/nodes/{node_id}/output")
async def update_output(node_id: int, body: OutputBody) -> Dict[str, Any]:
    try:
        graph_state.graph.update_node_output(node_id, body.output)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"ok": True}


class ModelSettingsBody(BaseModel):
    provider: Optional[ProviderType] = None
    model_name: Optional[str] = None
    thinking: Optional[bool] = None


@router.put("/nodes/{node_id}/model")
async def update_model(node_id: int, body: ModelSettingsBody) -> Dict[str, Any]:
    graph = graph_state.graph
    try:
        # provider first: switching provider restores that provider's default model
        if body.provider is not None:
            graph.set_provider(node_id, body.provider)
        if body.model_name is not None:
            graph.set_model_name(node_id, body.model_name)
        if body.thinking is not None:
            graph.set_thinking(node_id, body.thinking)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"ok": True}


class FileImportBody(BaseModel):
    file_path: str
    file_name: str
    content: str


@router.put("/nodes/{node_id}/file-import")
async def update_file_import(node_id: int, body: FileImportBody) -> Dict[str, Any]:
    try:
        graph_state.graph.set_file_import(node_id, body.file_path, body.file_name, body.content)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"ok": True}


class FileExportBody(BaseModel):
    folder_path: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None


@router.put("/nodes/{node_id}/file-export")
async def update_file_export(node_id: int, body: FileExportBody) -> Dict[str, Any]:
    try:
        graph_state.graph.set_file_export(node_id, body.folder_path, body.file_name, body.file_type)
        payload = graph_state.graph.nodes[node_id].payload
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"targetPath": payload.target_path()}


class MessageBody(BaseModel):
    content: str


@router.post("/nodes/{node_id}/messages")
async def send_message(node_id: int, body: MessageBody) -> Dict[str, Any]:
    try:
        output = await graph_state.executor.send_message(node_id, body.content)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"nodeId": node_id, "output": output}


# ── Connections ───────────────────────────────────────────────────────────────

class ConnectionBody(BaseModel):
    from_node_id: int
    to_node_id: int


@router.post("/connections", status_code=201)
async def add_connection(body: ConnectionBody) -> Dict[str, Any]:
    try:
        conn_id = graph_state.graph.add_connection(body.from_node_id, body.to_node_id)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"id": conn_id}


# ── Pointer handlers ──────────────────────────────────────────────────────────

class PointerBody(BaseModel):
    x: float
    y: float
    button: PointerButton = PointerButton.PRIMARY


class WheelBody(BaseModel):
    x: float
    y: float
    delta_y: float
    mode: WheelDeltaMode = WheelDeltaMode.PIXELS


class MenuAddBody(BaseModel):
    kind: NodeKind
    provider: ProviderType = ProviderType.OLLAMA


def _menu_dict(request) -> Optional[Dict[str, Any]]:
    if request is None:
        return None
    return {"menu": request.menu, "x": request.page_x, "y": request.page_y, "nodeId": request.node_id}


@router.post("/pointer/canvas-press")
async def canvas_press(body: PointerBody) -> Dict[str, Any]:
    return {"menu": _menu_dict(graph_state.pointer.canvas_press(body.x, body.y, body.button))}


@router.post("/pointer/move")
async def pointer_move(body: PointerBody) -> Dict[str, Any]:
    graph_state.pointer.pointer_move(body.x, body.y)
    return {"ok": True}


@router.post("/pointer/release")
async def pointer_release(body: PointerBody) -> Dict[str, Any]:
    return {"menu": _menu_dict(graph_state.pointer.pointer_release(body.x, body.y))}


@router.post("/pointer/wheel")
async def wheel(body: WheelBody) -> Dict[str, Any]:
    return {"zoom": graph_state.pointer.wheel(body.x, body.y, body.delta_y, body.mode)}


@router.post("/pointer/nodes/{node_id}/press")
async def node_press(node_id: int, body: PointerBody) -> Dict[str, Any]:
    try:
        request = graph_state.pointer.node_press(node_id, body.x, body.y, body.button)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"menu": _menu_dict(request)}


@router.post("/pointer/nodes/{node_id}/output-port")
async def output_port_press(node_id: int) -> Dict[str, Any]:
    try:
        started = graph_state.pointer.output_port_press(node_id)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"drawing": started}


@router.post("/pointer/nodes/{node_id}/input-port")
async def input_port_press(node_id: int) -> Dict[str, Any]:
    return {"drawing": graph_state.pointer.input_port_press(node_id)}


@router.post("/pointer/nodes/{node_id}/hover-enter")
async def node_hover_enter(node_id: int) -> Dict[str, Any]:
    graph_state.pointer.node_hover_enter(node_id)
    return {"targetNodeId": graph_state.graph.drawing_state.target_node_id}


@router.post("/pointer/nodes/{node_id}/hover-leave")
async def node_hover_leave(node_id: int) -> Dict[str, Any]:
    graph_state.pointer.node_hover_leave(node_id)
    return {"targetNodeId": graph_state.graph.drawing_state.target_node_id}


@router.post("/pointer/menu/add-node", status_code=201)
async def add_node_from_menu(body: MenuAddBody) -> Dict[str, Any]:
    try:
        node_id = graph_state.pointer.add_node_from_menu(body.kind, body.provider)
    except WorkflowError as exc:
        raise _http_error(exc)
    return {"id": node_id}


# ── Execution ─────────────────────────────────────────────────────────────────

@router.get("/execution-order")
async def get_execution_order() -> List[int]:
    return graph_state.executor.execution_order()


@router.post("/execute")
async def execute_workflow() -> Dict[str, Any]:
    report = await graph_state.executor.run()
    return {
        "completed": report.completed,
        "failed": {str(k): v for k, v in report.failed.items()},
        "skipped": report.skipped,
    }


@router.get("/providers/{provider}/models")
async def list_models(provider: ProviderType) -> List[str]:
    try:
        return await graph_state.provider(provider).available_models()
    except WorkflowError as exc:
        logger.error("Failed to list %s models: %s", provider.value, exc)
        raise HTTPException(status_code=502, detail=str(exc))
