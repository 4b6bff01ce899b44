from .graph_serializer import (
    WorkflowRecord,
    deserialize_workflow,
    dumps_workflow,
    loads_workflow,
    serialize_workflow,
)
