import pytest

from mosaik.core.Canvas import CanvasState
from mosaik.core.Errors import NoExecutionTargetError, NodeNotFoundError
from mosaik.core.Types import NodeKind
from mosaik.core.Workflow import WorkflowGraph


class TestConnectionDrawing:

    def setup_method(self):
        self.graph = WorkflowGraph()
        self.canvas = CanvasState(offset_x=20.0, offset_y=10.0, zoom=2.0)
        self.source = self.graph.add_node(NodeKind.PROMPT, 0.0, 0.0)
        self.target = self.graph.add_node(NodeKind.MODEL, 400.0, 0.0)
        self.drawing = self.graph.drawing

    def test_start_anchors_in_world_space(self):
        assert self.drawing.start(self.source, 420.0, 210.0, self.canvas)
        state = self.graph.drawing_state
        assert state.active
        assert state.source_node_id == self.source
        assert state.source_port_world_pos == (200.0, 100.0)
        assert state.current_mouse_world_pos == (200.0, 100.0)

        self.drawing.update_mouse(620.0, 410.0, self.canvas)
        assert state.current_mouse_world_pos == (300.0, 200.0)
        assert state.source_port_world_pos == (200.0, 100.0)

    def test_start_from_unknown_node_is_ignored(self):
        assert not self.drawing.start(99, 0.0, 0.0, self.canvas)
        assert not self.drawing.active

    def test_set_target_ignores_source(self):
        self.drawing.start(self.source, 0.0, 0.0, self.canvas)
        self.drawing.set_target(self.source)
        assert self.graph.drawing_state.target_node_id is None

        self.drawing.set_target(self.target)
        assert self.graph.drawing_state.target_node_id == self.target

    def test_clear_target_only_for_hovered_node(self):
        self.drawing.start(self.source, 0.0, 0.0, self.canvas)
        self.drawing.set_target(self.target)
        self.drawing.clear_target(self.source)
        assert self.graph.drawing_state.target_node_id == self.target
        self.drawing.clear_target(self.target)
        assert self.graph.drawing_state.target_node_id is None

    def test_complete_connects_and_returns_to_idle(self):
        self.graph.update_node_output(self.source, "hello")
        self.drawing.start(self.source, 0.0, 0.0, self.canvas)
        self.drawing.set_target(self.target)

        conn_id = self.drawing.complete()

        conn = self.graph.connections[conn_id]
        assert (conn.from_node_id, conn.to_node_id) == (self.source, self.target)
        assert self.graph.nodes[self.target].input == "hello"
        assert not self.drawing.active

    def test_complete_without_target(self):
        self.drawing.start(self.source, 0.0, 0.0, self.canvas)
        with pytest.raises(NoExecutionTargetError):
            self.drawing.complete()
        assert not self.drawing.active
        assert self.graph.connections == {}

    def test_complete_with_deleted_target_returns_to_idle(self):
        self.drawing.start(self.source, 0.0, 0.0, self.canvas)
        self.drawing.set_target(self.target)
        # bypass remove_node so the stale target survives in the drawing state
        del self.graph.nodes[self.target]

        with pytest.raises(NodeNotFoundError):
            self.drawing.complete()
        assert not self.drawing.active
        assert self.graph.connections == {}

    def test_cancel_discards_transient_state(self):
        self.drawing.start(self.source, 40.0, 40.0, self.canvas)
        self.drawing.set_target(self.target)
        self.drawing.cancel()
        state = self.graph.drawing_state
        assert not state.active
        assert state.target_node_id is None
        assert state.source_port_world_pos == (0.0, 0.0)

    def test_redirect_detaches_and_redraws_from_original_source(self):
        self.graph.update_node_output(self.source, "hello")
        conn_id = self.graph.add_connection(self.source, self.target)

        result = self.drawing.redirect(self.target)

        assert result == (self.source, conn_id)
        assert self.graph.connections == {}
        assert self.graph.nodes[self.target].input is None
        state = self.graph.drawing_state
        assert state.active
        assert state.source_node_id == self.source
        # anchored at the source's output port, mouse at the detached input port
        assert state.source_port_world_pos == (200.0, 100.0)
        assert state.current_mouse_world_pos == (400.0, 150.0)

    def test_redirect_then_complete_on_new_target(self):
        other = self.graph.add_node(NodeKind.MODEL, 400.0, 400.0)
        self.graph.add_connection(self.source, self.target)

        self.drawing.redirect(self.target)
        self.drawing.set_target(other)
        new_id = self.drawing.complete()

        assert [(c.from_node_id, c.to_node_id) for c in self.graph.connections.values()] == [
            (self.source, other)
        ]
        assert self.graph.connections[new_id].to_node_id == other

    def test_redirect_picks_lowest_connection_id(self):
        second_source = self.graph.add_node(NodeKind.PROMPT, 0.0, 300.0)
        first = self.graph.add_connection(second_source, self.target)
        self.graph.add_connection(self.source, self.target)

        assert self.drawing.redirect(self.target) == (second_source, first)

    def test_redirect_without_connection_is_noop(self):
        assert self.drawing.redirect(self.target) is None
        assert not self.drawing.active
