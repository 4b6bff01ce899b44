from fastapi.testclient import TestClient

from mosaik.core.Errors import ProviderTransportError
from mosaik.core.Types import ProviderType
from mosaik.server.main import app
from mosaik.server.state import graph_state
from mosaik.test.fakes import ScriptedProvider


class TestGraphRoutes:

    def setup_method(self):
        graph_state.reset()
        self.provider = ScriptedProvider()
        graph_state.set_provider(ProviderType.OLLAMA, self.provider)
        self.client = TestClient(app)

    def test_health(self):
        assert self.client.get("/health").json() == {"status": "ok"}

    def test_default_workflow(self):
        data = self.client.get("/api/workflow").json()
        assert [n["payload"]["kind"] for n in data["nodes"]] == ["Prompt", "Model"]
        assert data["connections"] == [{"id": 0, "from_node_id": 0, "to_node_id": 1}]

    def test_edit_prompt_and_execute(self):
        assert self.client.put("/api/nodes/0/output", json={"output": "hello"}).status_code == 200
        assert self.client.get("/api/execution-order").json() == [1]

        report = self.client.post("/api/execute").json()

        assert report == {"completed": [1], "failed": {}, "skipped": []}
        assert graph_state.graph.nodes[1].output == "re:hello"

    def test_execute_reports_failures(self):
        graph_state.set_provider(ProviderType.OLLAMA, ScriptedProvider(
            request_error=ProviderTransportError("Ollama API error: Status 500")
        ))
        self.client.put("/api/nodes/0/output", json={"output": "hello"})

        report = self.client.post("/api/execute").json()

        assert report["failed"] == {"1": "Ollama API error: Status 500"}
        assert graph_state.graph.nodes[1].needs_execution

    def test_send_message(self):
        response = self.client.post("/api/nodes/1/messages", json={"content": "hi there"})
        assert response.status_code == 200
        assert response.json() == {"nodeId": 1, "output": "re:hi there"}

    def test_send_message_to_prompt_node(self):
        response = self.client.post("/api/nodes/0/messages", json={"content": "hi"})
        assert response.status_code == 400

    def test_create_and_delete_node(self):
        response = self.client.post("/api/nodes", json={"kind": "FileExport", "x": 10, "y": 20})
        assert response.status_code == 201
        node_id = response.json()["id"]
        assert response.json()["title"] == "File Export"

        assert self.client.delete(f"/api/nodes/{node_id}").status_code == 204
        assert self.client.delete(f"/api/nodes/{node_id}").status_code == 404

    def test_self_connection_is_400(self):
        response = self.client.post("/api/connections", json={"from_node_id": 1, "to_node_id": 1})
        assert response.status_code == 400
        assert "itself" in response.json()["detail"]

    def test_unknown_node_is_404(self):
        assert self.client.post("/api/nodes/99/reset").status_code == 404
        assert self.client.put("/api/nodes/99/output", json={"output": "x"}).status_code == 404

    def test_model_settings(self):
        response = self.client.put("/api/nodes/1/model", json={"provider": "anthropic", "thinking": True})
        assert response.status_code == 200
        payload = graph_state.graph.nodes[1].payload
        assert payload.provider == ProviderType.ANTHROPIC
        assert payload.model_name == "claude-sonnet-4-20250514"
        assert payload.thinking

    def test_file_export_settings(self):
        node_id = self.client.post("/api/nodes", json={"kind": "FileExport", "x": 0, "y": 0}).json()["id"]
        response = self.client.put(f"/api/nodes/{node_id}/file-export",
                                   json={"folder_path": "/out", "file_name": "notes", "file_type": "md"})
        assert response.json() == {"targetPath": "/out/notes.md"}
        bad = self.client.put(f"/api/nodes/{node_id}/file-export", json={"file_type": "pdf"})
        assert bad.status_code == 400

    def test_node_inputs_in_visual_order(self):
        extra = self.client.post("/api/nodes", json={"kind": "Prompt", "x": 50, "y": 0}).json()["id"]
        self.client.post("/api/connections", json={"from_node_id": extra, "to_node_id": 1})

        inputs = self.client.get("/api/nodes/1/inputs").json()

        assert [(i["nodeId"], i["order"]) for i in inputs] == [(extra, 1), (0, 2)]

    def test_maximize_and_rect(self):
        assert self.client.post("/api/nodes/1/maximize").json() == {"isMaximized": True}
        rect = self.client.get("/api/nodes/1/rect").json()
        assert rect == {"x": 150.0, "y": 100.0, "width": 750.0, "height": 900.0}

    def test_pointer_draw_connection(self):
        self.client.post("/api/nodes", json={"kind": "Model", "x": 400, "y": 400})
        assert self.client.post("/api/pointer/nodes/0/output-port").json() == {"drawing": True}
        assert self.client.post("/api/pointer/nodes/2/hover-enter").json() == {"targetNodeId": 2}
        response = self.client.post("/api/pointer/release", json={"x": 500, "y": 500})
        assert response.json() == {"menu": None}
        assert [(c.from_node_id, c.to_node_id) for c in graph_state.graph.connections.values()] == [
            (0, 1), (0, 2)
        ]

    def test_pointer_menu_add_node(self):
        response = self.client.post("/api/pointer/canvas-press", json={"x": 30, "y": 40, "button": "secondary"})
        assert response.json()["menu"]["menu"] == "canvas"
        created = self.client.post("/api/pointer/menu/add-node", json={"kind": "FileImport"})
        assert created.status_code == 201
        node = graph_state.graph.nodes[created.json()["id"]]
        assert (node.position_x, node.position_y) == (30.0, 40.0)

    def test_wheel(self):
        assert self.client.post("/api/pointer/wheel", json={"x": 0, "y": 0, "delta_y": -100}).json() == {"zoom": 2.0}
        assert self.client.get("/api/canvas").json()["zoom"] == 2.0

    def test_replace_workflow(self):
        snapshot = self.client.get("/api/workflow").json()
        snapshot["nodes"] = snapshot["nodes"][:1]
        snapshot["connections"] = []

        response = self.client.put("/api/workflow", json=snapshot)

        assert response.status_code == 200
        assert graph_state.graph.node_ids() == [0]
        assert self.client.put("/api/workflow", json={"nodes": [{"id": 1}]}).status_code == 400

    def test_replace_workflow_rejects_self_loop(self):
        snapshot = self.client.get("/api/workflow").json()
        node_id = snapshot["nodes"][0]["id"]
        snapshot["connections"].append({"id": 99, "from_node_id": node_id, "to_node_id": node_id})
        before = graph_state.snapshot()

        response = self.client.put("/api/workflow", json=snapshot)

        assert response.status_code == 400
        assert graph_state.snapshot() == before

    def test_list_models(self):
        assert self.client.get("/api/providers/ollama/models").json() == ["fake-model"]
