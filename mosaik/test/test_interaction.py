import pytest

from mosaik.core.Canvas import CanvasState
from mosaik.core.Errors import WorkflowError
from mosaik.core.Interaction import PointerController
from mosaik.core.Types import NodeKind, PointerButton, ProviderType, WheelDeltaMode
from mosaik.core.Workflow import WorkflowGraph


class TestPointerController:

    def setup_method(self):
        self.graph = WorkflowGraph()
        self.canvas = CanvasState(offset_x=100.0, offset_y=50.0, zoom=2.0)
        self.pointer = PointerController(self.graph, self.canvas)

    def test_secondary_press_opens_add_menu(self):
        request = self.pointer.canvas_press(300.0, 250.0, PointerButton.SECONDARY)
        assert request.menu == "canvas"
        assert (request.page_x, request.page_y) == (300.0, 250.0)

        node_id = self.pointer.add_node_from_menu(NodeKind.MODEL, ProviderType.ANTHROPIC)

        node = self.graph.nodes[node_id]
        assert (node.position_x, node.position_y) == (100.0, 100.0)
        assert node.title == "Anthropic"
        assert self.pointer.menu is None

    def test_add_from_menu_without_menu(self):
        with pytest.raises(WorkflowError):
            self.pointer.add_node_from_menu(NodeKind.PROMPT)

    def test_primary_press_pans_canvas(self):
        self.pointer.canvas_press(10.0, 10.0)
        self.pointer.pointer_move(40.0, 50.0)
        assert (self.canvas.offset_x, self.canvas.offset_y) == (130.0, 90.0)

        assert self.pointer.pointer_release(40.0, 50.0) is None
        self.pointer.pointer_move(400.0, 500.0)
        assert (self.canvas.offset_x, self.canvas.offset_y) == (130.0, 90.0)

    def test_wheel_zooms_at_cursor(self):
        before = self.canvas.page_to_world(500.0, 400.0)
        zoom = self.pointer.wheel(500.0, 400.0, -100.0, WheelDeltaMode.PIXELS)
        assert zoom == pytest.approx(4.0)
        assert self.canvas.page_to_world(500.0, 400.0) == pytest.approx(before)

    def test_node_press_selects_and_drags(self):
        node_id = self.graph.add_node(NodeKind.PROMPT, 0.0, 0.0)

        assert self.pointer.node_press(node_id, 120.0, 70.0) is None
        assert self.graph.selected_node_id == node_id
        self.pointer.pointer_move(220.0, 170.0)
        self.pointer.pointer_release(220.0, 170.0)

        node = self.graph.nodes[node_id]
        assert (node.position_x, node.position_y) == (50.0, 50.0)
        assert self.graph.dragging_node_id is None
        # node drag takes priority over panning
        assert (self.canvas.offset_x, self.canvas.offset_y) == (100.0, 50.0)

    def test_node_secondary_press_requests_node_menu(self):
        node_id = self.graph.add_node(NodeKind.PROMPT, 0.0, 0.0)
        request = self.pointer.node_press(node_id, 120.0, 70.0, PointerButton.SECONDARY)
        assert request.menu == "node"
        assert request.node_id == node_id
        assert self.graph.dragging_node_id is None

    def test_draw_connection_by_drag_and_hover(self):
        source = self.graph.add_node(NodeKind.PROMPT, 0.0, 0.0)
        target = self.graph.add_node(NodeKind.MODEL, 400.0, 0.0)

        assert self.pointer.output_port_press(source)
        assert self.graph.drawing_state.source_port_world_pos == pytest.approx((200.0, 100.0))
        self.pointer.pointer_move(900.0, 350.0)
        assert self.graph.drawing_state.current_mouse_world_pos == (400.0, 150.0)
        self.pointer.node_hover_enter(target)

        assert self.pointer.pointer_release(900.0, 350.0) is None

        assert [(c.from_node_id, c.to_node_id) for c in self.graph.connections.values()] == [(source, target)]
        assert not self.graph.drawing.active

    def test_release_over_canvas_cancels_and_opens_menu(self):
        source = self.graph.add_node(NodeKind.PROMPT, 0.0, 0.0)
        self.pointer.output_port_press(source)
        self.pointer.pointer_move(700.0, 700.0)

        request = self.pointer.pointer_release(700.0, 700.0)

        assert request.menu == "canvas"
        assert not self.graph.drawing.active
        assert self.graph.connections == {}
        new_id = self.pointer.add_node_from_menu(NodeKind.MODEL)
        assert (self.graph.nodes[new_id].position_x, self.graph.nodes[new_id].position_y) == (300.0, 325.0)

    def test_hover_leave_clears_target(self):
        source = self.graph.add_node(NodeKind.PROMPT, 0.0, 0.0)
        target = self.graph.add_node(NodeKind.MODEL, 400.0, 0.0)
        self.pointer.output_port_press(source)
        self.pointer.node_hover_enter(target)
        self.pointer.node_hover_leave(target)
        assert self.graph.drawing_state.target_node_id is None

    def test_hover_without_drawing_is_ignored(self):
        target = self.graph.add_node(NodeKind.MODEL, 400.0, 0.0)
        self.pointer.node_hover_enter(target)
        assert self.graph.drawing_state.target_node_id is None

    def test_input_port_press_redirects(self):
        source = self.graph.add_node(NodeKind.PROMPT, 0.0, 0.0)
        target = self.graph.add_node(NodeKind.MODEL, 400.0, 0.0)
        other = self.graph.add_node(NodeKind.MODEL, 400.0, 400.0)
        self.graph.add_connection(source, target)

        assert self.pointer.input_port_press(target)
        self.pointer.node_hover_enter(other)
        self.pointer.pointer_release(0.0, 0.0)

        assert [(c.from_node_id, c.to_node_id) for c in self.graph.connections.values()] == [(source, other)]

    def test_input_port_press_without_connection(self):
        target = self.graph.add_node(NodeKind.MODEL, 400.0, 0.0)
        assert not self.pointer.input_port_press(target)
        assert not self.graph.drawing.active
