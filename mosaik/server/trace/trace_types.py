"""
TraceEvent type definitions.
All events are plain dicts so they can be emitted over Socket.IO without Pydantic overhead.
"""
from typing import Dict, List, Literal, Optional, TypedDict, Union


class ExecStartEvent(TypedDict):
    type: Literal["EXEC_START"]
    order: List[int]
    ts: int


class NodeRunningEvent(TypedDict):
    type: Literal["NODE_RUNNING"]
    nodeId: int
    ts: int


class NodeOutputEvent(TypedDict):
    type: Literal["NODE_OUTPUT"]
    nodeId: int
    content: str
    thinking: Optional[str]
    ts: int


class NodeDoneEvent(TypedDict):
    type: Literal["NODE_DONE"]
    nodeId: int
    durationMs: float
    ts: int


class NodeErrorEvent(TypedDict):
    type: Literal["NODE_ERROR"]
    nodeId: int
    error: str
    ts: int


class ExecDoneEvent(TypedDict):
    type: Literal["EXEC_DONE"]
    completed: List[int]
    failed: Dict[str, str]
    skipped: List[int]
    ts: int


TraceEvent = Union[
    ExecStartEvent,
    NodeRunningEvent,
    NodeOutputEvent,
    NodeDoneEvent,
    NodeErrorEvent,
    ExecDoneEvent,
]
