"""
Workflow nodes and their kind-specific payloads.

A node's kind is a closed set: Prompt, FileImport, FileExport and Model.  The
kind-specific fields live in a payload dataclass; operations that differ per
kind (reset, prompt building) dispatch on `node.kind` instead of subclassing.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .Errors import EmptyPromptError, WorkflowError
from .Types import MessageRole, NodeKind, PortType, ProviderType

logger = logging.getLogger(__name__)

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
DEFAULT_EXPORT_TYPE = "txt"
EXPORT_FILE_TYPES = ("txt", "md")

# Maximized nodes render this many times larger around the same position
MAXIMIZE_SCALE = 3.0


@dataclass
class ChatMessage:
    role: MessageRole
    content: str = ""
    thinking: Optional[str] = None


# ── Payloads ────────────────────────────────────────────────────────────────

@dataclass
class PromptPayload:
    pass


@dataclass
class FileImportPayload:
    file_path: Optional[str] = None
    file_name: Optional[str] = None


@dataclass
class FileExportPayload:
    folder_path: Optional[str] = None
    file_name: Optional[str] = None
    file_type: str = DEFAULT_EXPORT_TYPE

    def target_path(self) -> Optional[str]:
        """Full path the export collaborator should write to, if configured."""
        if not self.folder_path or not self.file_name:
            return None
        return os.path.join(self.folder_path, f"{self.file_name}.{self.file_type}")


@dataclass
class ModelPayload:
    provider: ProviderType = ProviderType.OLLAMA
    model_name: str = ""
    messages: List[ChatMessage] = field(default_factory=list)
    thinking: bool = False


NodePayload = Union[PromptPayload, FileImportPayload, FileExportPayload, ModelPayload]

_PAYLOAD_KINDS = {
    PromptPayload: NodeKind.PROMPT,
    FileImportPayload: NodeKind.FILE_IMPORT,
    FileExportPayload: NodeKind.FILE_EXPORT,
    ModelPayload: NodeKind.MODEL,
}


def default_payload(kind: NodeKind, provider: ProviderType = ProviderType.OLLAMA) -> NodePayload:
    if kind == NodeKind.PROMPT:
        return PromptPayload()
    elif kind == NodeKind.FILE_IMPORT:
        return FileImportPayload()
    elif kind == NodeKind.FILE_EXPORT:
        return FileExportPayload()
    elif kind == NodeKind.MODEL:
        model_name = DEFAULT_ANTHROPIC_MODEL if provider == ProviderType.ANTHROPIC else ""
        return ModelPayload(provider=provider, model_name=model_name)
    raise ValueError(f"Unknown node kind '{kind}'")


def default_layout(kind: NodeKind, provider: ProviderType = ProviderType.OLLAMA) -> Tuple[str, float, float]:
    """(title, width, height) a freshly created node of `kind` starts with."""
    if kind == NodeKind.PROMPT:
        return ("Prompt", 200.0, 200.0)
    elif kind == NodeKind.FILE_IMPORT:
        return ("File Import", 200.0, 150.0)
    elif kind == NodeKind.FILE_EXPORT:
        return ("File Export", 200.0, 150.0)
    return (provider.title, 250.0, 300.0)


# ── Node ────────────────────────────────────────────────────────────────────

@dataclass
class Node:
    id: int
    payload: NodePayload
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

    @classmethod
    def create(cls, node_id: int, kind: NodeKind, position_x: float, position_y: float,
               provider: ProviderType = ProviderType.OLLAMA) -> "Node":
        title, width, height = default_layout(kind, provider)
        return cls(
            id=node_id,
            payload=default_payload(kind, provider),
            position_x=position_x,
            position_y=position_y,
            width=width,
            height=height,
            title=title,
        )

    def __repr__(self):
        return f"Node({self.id}, {self.kind.value}, pos=({self.position_x}, {self.position_y}))"

    @property
    def kind(self) -> NodeKind:
        return _PAYLOAD_KINDS[type(self.payload)]

    def isModel(self) -> bool:
        return self.kind == NodeKind.MODEL

    def prepare_prompt(self) -> List[ChatMessage]:
        """
        Build the message list sent to the provider: the aggregated input (if
        not blank) as a leading user turn, followed by the stored chat history.
        """
        if not isinstance(self.payload, ModelPayload):
            raise WorkflowError(f"prepare_prompt called on non-model node {self.id}")

        messages: List[ChatMessage] = []
        if self.input is not None and self.input.strip():
            messages.append(ChatMessage(MessageRole.USER, self.input))
        messages.extend(
            ChatMessage(m.role, m.content, m.thinking) for m in self.payload.messages
        )
        if not messages:
            raise EmptyPromptError(self.id)
        return messages

    def reset(self) -> None:
        self.output = None
        self.needs_execution = True

        payload = self.payload
        if isinstance(payload, ModelPayload):
            payload.messages.clear()
        elif isinstance(payload, FileImportPayload):
            payload.file_path = None
            payload.file_name = None
        elif isinstance(payload, FileExportPayload):
            payload.folder_path = None
            payload.file_name = None
            payload.file_type = DEFAULT_EXPORT_TYPE


def port_world_pos(node: Node, port: PortType) -> Tuple[float, float]:
    """World position of a node's input (left edge) or output (right edge) port."""
    mid_y = node.position_y + node.height / 2.0
    if port == PortType.INPUT:
        return (node.position_x, mid_y)
    return (node.position_x + node.width, mid_y)


def render_rect(node: Node) -> Tuple[float, float, float, float]:
    """(x, y, width, height) a node is drawn at; maximized nodes grow around their box."""
    if not node.is_maximized:
        return (node.position_x, node.position_y, node.width, node.height)
    width = node.width * MAXIMIZE_SCALE
    height = node.height * MAXIMIZE_SCALE
    centered_x = node.position_x - (width - node.width) / 2.0
    return (centered_x, node.position_y, width, height)
