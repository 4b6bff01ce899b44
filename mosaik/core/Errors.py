"""
Error taxonomy for the workflow engine.

Graph-mutation errors are local and recoverable: the operation that raises
leaves the graph exactly as it found it.  Execution errors are per node; the
scheduler catches them and moves on to the next node in the run.
"""
from typing import Optional


class WorkflowError(Exception):
    """Base class for every error raised by the workflow engine."""


class NodeNotFoundError(WorkflowError):
    def __init__(self, node_id: int):
        super().__init__(f"Node {node_id} does not exist")
        self.node_id = node_id


class SelfConnectionError(WorkflowError):
    def __init__(self, node_id: int):
        super().__init__(f"Cannot connect node {node_id} to itself")
        self.node_id = node_id


class NoExecutionTargetError(WorkflowError):
    def __init__(self):
        super().__init__("No valid target found for connection")


class EmptyPromptError(WorkflowError):
    def __init__(self, node_id: int):
        super().__init__(f"No input or messages provided to model node {node_id}")
        self.node_id = node_id


class NodeBusyError(WorkflowError):
    def __init__(self, node_id: int):
        super().__init__(f"Node {node_id} is already executing")
        self.node_id = node_id


class ProviderTransportError(WorkflowError):
    """Network, auth or non-2xx failure talking to a model provider."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedStreamFrame(WorkflowError):
    """A provider line that could not be parsed; dropped by the stream loop."""
