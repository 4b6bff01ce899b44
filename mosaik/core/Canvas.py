from typing import Tuple

from .Types import WheelDeltaMode

MIN_ZOOM = 0.1
MAX_ZOOM = 10.0


def clamp_zoom(zoom: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


def wheel_delta(delta_y: float, mode: WheelDeltaMode = WheelDeltaMode.PIXELS) -> float:
    """Convert a raw wheel delta into the relative zoom change used by zoom_at()."""
    return delta_y * mode.scale


class CanvasState:
    """
    Pan/zoom transform between page (screen) space and the graph's world space.

        page = world * zoom + offset
        world = (page - offset) / zoom
    """

    def __init__(self, offset_x: float = 0.0, offset_y: float = 0.0, zoom: float = 1.0):
        self.offset_x = offset_x
        self.offset_y = offset_y
        self.zoom = clamp_zoom(zoom)

        # Canvas panning state
        self.dragging = False
        self.drag_start_x = 0.0
        self.drag_start_y = 0.0
        self.last_offset_x = 0.0
        self.last_offset_y = 0.0

    def __repr__(self):
        return f"CanvasState(offset=({self.offset_x}, {self.offset_y}), zoom={self.zoom})"

    def page_to_world(self, page_x: float, page_y: float) -> Tuple[float, float]:
        return (
            (page_x - self.offset_x) / self.zoom,
            (page_y - self.offset_y) / self.zoom,
        )

    def world_to_page(self, world_x: float, world_y: float) -> Tuple[float, float]:
        return (
            world_x * self.zoom + self.offset_x,
            world_y * self.zoom + self.offset_y,
        )

    def zoom_at(self, page_x: float, page_y: float, delta: float) -> float:
        """
        Zoom by a relative `delta` keeping the world point under the cursor
        fixed on screen.  Returns the new zoom.
        """
        old_zoom = self.zoom
        new_zoom = clamp_zoom(old_zoom * (1.0 + delta))

        # world point under the cursor at the OLD zoom
        world_x = (page_x - self.offset_x) / old_zoom
        world_y = (page_y - self.offset_y) / old_zoom

        self.offset_x = page_x - world_x * new_zoom
        self.offset_y = page_y - world_y * new_zoom
        self.zoom = new_zoom
        return new_zoom

    # ── Panning ─────────────────────────────────────────────────────────────

    def start_pan(self, page_x: float, page_y: float) -> None:
        self.dragging = True
        self.drag_start_x = page_x
        self.drag_start_y = page_y
        # offset before this drag started
        self.last_offset_x = self.offset_x
        self.last_offset_y = self.offset_y

    def pan_to(self, page_x: float, page_y: float) -> None:
        if not self.dragging:
            return
        self.offset_x = self.last_offset_x + (page_x - self.drag_start_x)
        self.offset_y = self.last_offset_y + (page_y - self.drag_start_y)

    def end_pan(self) -> None:
        self.dragging = False
