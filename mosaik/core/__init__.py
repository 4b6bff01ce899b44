from .Types import MessageRole, NodeKind, PortType, PointerButton, ProviderType, WheelDeltaMode
from .Errors import (
    EmptyPromptError,
    MalformedStreamFrame,
    NoExecutionTargetError,
    NodeBusyError,
    NodeNotFoundError,
    ProviderTransportError,
    SelfConnectionError,
    WorkflowError,
)
from .Canvas import CanvasState
from .Node import ChatMessage, Node
from .GraphPrimitives import Connection, ConnectionDrawingState
from .Workflow import WorkflowGraph
