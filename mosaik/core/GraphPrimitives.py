from typing import NamedTuple, Optional, Tuple
from dataclasses import dataclass


# Connection as a simple immutable record; the graph owns the id allocation.
class Connection(NamedTuple):
    id: int
    from_node_id: int
    to_node_id: int

    def __repr__(self):
        return f"Connection({self.id}: {self.from_node_id} -> {self.to_node_id})"

    def touches(self, node_id: int) -> bool:
        return self.from_node_id == node_id or self.to_node_id == node_id


@dataclass
class ConnectionDrawingState:
    """In-progress "drag to connect" interaction.  Inactive means Idle."""
    active: bool = False
    source_node_id: int = 0
    source_port_world_pos: Tuple[float, float] = (0.0, 0.0)
    current_mouse_world_pos: Tuple[float, float] = (0.0, 0.0)
    target_node_id: Optional[int] = None
