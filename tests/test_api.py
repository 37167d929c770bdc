"""
Tests for the FastAPI application.
"""
import recording_steps
from factories import action, edge, trigger


def document(nodes, edges, name=None):
    data = {"nodes": nodes, "edges": edges}
    if name:
        data["name"] = name
    return data


DIAMOND = document(
    [
        trigger("T"),
        action("L", "Left", "Notify", message="left"),
        action("R", "Right", "Notify", message="right"),
        action("J", "Join", "Notify", message="join {{$L.message}}"),
    ],
    [edge("T", "L"), edge("T", "R"), edge("L", "J"), edge("R", "J")],
    name="Daily Digest",
)

EMAIL = document(
    [trigger("T"), action("A", "Send Email", "Send Email", emailTo="{{$T.email}}")],
    [edge("T", "A")],
)


class TestSystemEndpoints:
    """Test the root, health and step listing endpoints."""

    def test_root(self, test_client):
        """Test the API information endpoint."""
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "Workflow Engine API"

    def test_health(self, test_client):
        """Test the health check."""
        response = test_client.get("/system/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_headers(self, test_client):
        """Test that the logging middleware tags every response."""
        response = test_client.get("/system/health")

        assert len(response.headers["X-Request-ID"]) == 8
        assert response.headers["X-Response-Time"].endswith("ms")

    def test_list_steps(self, test_client):
        """Test the registered step listing."""
        data = test_client.get("/steps").json()

        assert data["total"] == 4
        email = next(step for step in data["steps"] if step["action_type"] == "Send Email")
        assert email["aliases"] == ["resend/send-email"]
        assert email["credentials"] == ["RESEND_API_KEY"]
        assert email["import_path"] == "recording_steps"


class TestWorkflowDefinitions:
    """Test storing, fetching, validating and compiling workflows."""

    def test_put_and_get(self, test_client):
        """Test that a stored graph can be read back."""
        put = test_client.put("/workflows/wf-1", json=DIAMOND)
        assert put.status_code == 200

        data = test_client.get("/workflows/wf-1").json()
        assert data["workflow_id"] == "wf-1"
        assert data["name"] == "Daily Digest"
        assert [node["id"] for node in data["graph"]["nodes"]] == ["T", "L", "R", "J"]
        assert data["graph"]["nodes"][0]["kind"] == "trigger"

    def test_put_accepts_editor_envelope(self, test_client):
        """Test that editor-shaped nodes are normalized on the way in."""
        body = {
            "nodes": [
                {"id": "t", "type": "trigger", "data": {"type": "trigger", "label": "Start", "config": {}}},
                {"id": "a", "type": "action", "data": {
                    "type": "action", "label": "Ping", "config": {"actionType": "Notify", "message": "hi"},
                }},
            ],
            "edges": [{"id": "e1", "source": "t", "target": "a", "sourceHandle": None}],
        }
        test_client.put("/workflows/editor", json=body)

        nodes = test_client.get("/workflows/editor").json()["graph"]["nodes"]
        assert nodes[1]["label"] == "Ping"
        assert nodes[1]["config"]["actionType"] == "Notify"

    def test_put_replaces_graph(self, test_client):
        """Test that a second put replaces the first graph entirely."""
        test_client.put("/workflows/wf-1", json=DIAMOND)
        test_client.put("/workflows/wf-1", json=EMAIL)

        data = test_client.get("/workflows/wf-1").json()
        assert [node["id"] for node in data["graph"]["nodes"]] == ["T", "A"]

    def test_unknown_workflow(self, test_client):
        """Test the 404 for a workflow that was never stored."""
        response = test_client.get("/workflows/missing")

        assert response.status_code == 404
        assert response.json()["detail"] == "Workflow missing not found"

    def test_validate(self, test_client):
        """Test the validation report of a stored graph."""
        broken = document([trigger("T"), action("A", "A", "Teleport")], [edge("T", "A"), edge("A", "ghost")])
        test_client.put("/workflows/broken", json=broken)

        data = test_client.post("/workflows/broken/validate").json()
        assert data["ok"] is False
        assert [issue["code"] for issue in data["errors"]] == ["DANGLING_EDGE_TARGET"]
        assert [issue["code"] for issue in data["warnings"]] == ["UNKNOWN_ACTION_TYPE"]

    def test_code(self, test_client):
        """Test the generated source endpoint."""
        test_client.put("/workflows/wf-1", json=DIAMOND)

        response = test_client.get("/workflows/wf-1/code")
        assert response.status_code == 200

        data = response.json()
        assert data["function_name"] == "run_workflow"
        assert data["variables"] == {"L": "left", "J": "join"}
        assert "from recording_steps import notify" in data["imports"]
        assert "# Workflow: Daily Digest" in data["code"].splitlines()
        assert data["report"]["errors"] == []


class TestExecution:
    """Test running stored workflows over HTTP."""

    def test_execute(self, test_client):
        """Test a successful run and its response shape."""
        test_client.put("/workflows/wf-1", json=DIAMOND)

        response = test_client.post("/workflows/wf-1/execute", json={"trigger_input": {"id": 1}})
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "success"
        assert data["success"] is True
        assert data["output"] == {"message": "join left", "delivered": True}
        assert set(data["results"]) == {"T", "L", "R", "J"}

    def test_step_failure_is_a_normal_response(self, test_client):
        """Test that failing nodes are reported in a 200 response."""
        failing = document(
            [trigger("T"), action("A", "Fails", "Notify", message="x", fail=True)],
            [edge("T", "A")],
        )
        test_client.put("/workflows/failing", json=failing)

        data = test_client.post("/workflows/failing/execute", json={}).json()
        assert data["status"] == "failed"
        assert data["error"] == "1 node(s) failed: A"
        assert data["results"]["A"] == {"success": False, "data": None, "error": "could not deliver x"}

    def test_user_credentials(self, test_client):
        """Test that a per-run bundle replaces system credentials."""
        test_client.put("/workflows/email", json=EMAIL)

        response = test_client.post("/workflows/email/execute", json={
            "trigger_input": {"email": "a@b.com"},
            "credentials": {"resend": {"RESEND_API_KEY": "re_user"}},
        })

        assert response.status_code == 200
        assert recording_steps.SECRETS == ["re_user"]
        assert "re_user" not in response.text

    def test_no_trigger_nodes(self, test_client):
        """Test the 422 answer for a graph without triggers."""
        test_client.put("/workflows/empty", json=document([action("A", "A", "Notify", message="x")], []))

        response = test_client.post("/workflows/empty/execute", json={})
        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "NO_TRIGGER_NODES"
        assert recording_steps.CALLS == []

    def test_structural_error(self, test_client):
        """Test the 422 answer for a graph with dangling edges."""
        test_client.put("/workflows/dangling", json=document([trigger("T")], [edge("T", "ghost")]))

        response = test_client.post("/workflows/dangling/execute", json={})
        assert response.status_code == 422
        assert response.json()["detail"]["issues"][0]["code"] == "DANGLING_EDGE_TARGET"

    def test_execute_unknown_workflow(self, test_client):
        """Test the 404 for running a workflow that was never stored."""
        assert test_client.post("/workflows/missing/execute", json={}).status_code == 404


class TestExecutionHistory:
    """Test the run and log endpoints."""

    def test_run_and_logs(self, test_client):
        """Test that a run can be inspected after it finishes."""
        test_client.put("/workflows/wf-1", json=DIAMOND)
        run_id = test_client.post("/workflows/wf-1/execute", json={}).json()["run_id"]

        run = test_client.get(f"/executions/{run_id}").json()
        assert run["workflow_id"] == "wf-1"
        assert run["status"] == "success"
        assert run["finished_at"] is not None

        logs = test_client.get(f"/executions/{run_id}/logs").json()
        assert logs[0]["node_id"] == "T"
        assert logs[-1]["node_id"] == "J"
        assert logs[-1]["input"]["message"] == "join left"
        assert all(entry["status"] == "success" for entry in logs)

    def test_unknown_run(self, test_client):
        """Test the 404s for an unknown run id."""
        assert test_client.get("/executions/nope").status_code == 404
        assert test_client.get("/executions/nope/logs").status_code == 404
