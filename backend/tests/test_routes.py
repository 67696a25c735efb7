"""API tests for the workflow, execution and tool endpoints."""

import pytest

GREETING_GRAPH = {
    "nodes": [
        {"id": "start", "type": "trigger", "position": {"x": 0, "y": 0}, "data": {}},
        {"id": "greet", "type": "text_template", "position": {"x": 100, "y": 0},
         "data": {"template": "Hello, {{name}}!"}},
        {"id": "check", "type": "decision", "position": {"x": 200, "y": 0},
         "data": {"condition": '"Hello" in value'}},
        {"id": "shout", "type": "function", "position": {"x": 300, "y": 0},
         "data": {"code": "return input.upper()"}},
    ],
    "edges": [
        {"id": "e1", "source": "start", "target": "greet"},
        {"id": "e2", "source": "greet", "target": "check"},
        {"id": "e3", "source": "check", "target": "shout", "sourceHandle": "true"},
    ],
}


async def create_workflow(client, **body):
    body.setdefault("name", "Greeter")
    resp = await client.post("/api/workflows", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
class TestWorkflowCrud:
    async def test_create_and_get(self, client):
        created = await create_workflow(client, graph=GREETING_GRAPH)
        assert created["status"] == "draft"

        resp = await client.get(f"/api/workflows/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["graph"]["edges"][2]["sourceHandle"] == "true"

    async def test_list_omits_graph(self, client):
        await create_workflow(client, name="A")
        await create_workflow(client, name="B", status="active")

        resp = await client.get("/api/workflows")
        assert [w["name"] for w in resp.json()] == ["A", "B"]
        assert resp.json()[0]["graph"] is None

        active = await client.get("/api/workflows", params={"status": "active"})
        assert [w["name"] for w in active.json()] == ["B"]

    async def test_get_missing(self, client):
        resp = await client.get("/api/workflows/999")
        assert resp.status_code == 404

    async def test_patch(self, client):
        created = await create_workflow(client)
        resp = await client.patch(f"/api/workflows/{created['id']}", json={"status": "active"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "active"

        empty = await client.patch(f"/api/workflows/{created['id']}", json={})
        assert empty.status_code == 400

    async def test_delete(self, client):
        created = await create_workflow(client)
        assert (await client.delete(f"/api/workflows/{created['id']}")).status_code == 204
        assert (await client.get(f"/api/workflows/{created['id']}")).status_code == 404

    async def test_replace_graph(self, client):
        created = await create_workflow(client)
        resp = await client.put(f"/api/workflows/{created['id']}/graph", json=GREETING_GRAPH)

        assert resp.status_code == 200
        assert len(resp.json()["graph"]["nodes"]) == 4

    async def test_invalid_graph_rejected(self, client):
        created = await create_workflow(client)
        bad = {
            "nodes": [{"id": "a", "type": "teleport"}],
            "edges": [{"id": "e", "source": "a", "target": "ghost"}],
        }
        resp = await client.put(f"/api/workflows/{created['id']}/graph", json=bad)

        assert resp.status_code == 422
        codes = {e["code"] for e in resp.json()["detail"]["errors"]}
        assert codes == {"INVALID_NODE_TYPE", "DANGLING_EDGE"}

    async def test_create_with_invalid_graph(self, client):
        resp = await client.post("/api/workflows", json={
            "name": "Loop",
            "graph": {
                "nodes": [
                    {"id": "t", "type": "trigger"},
                    {"id": "o", "type": "output"},
                ],
                "edges": [
                    {"id": "e1", "source": "t", "target": "o"},
                    {"id": "e2", "source": "o", "target": "t"},
                ],
            },
        })
        assert resp.status_code == 422


@pytest.mark.asyncio
class TestExecution:
    async def test_execute(self, client):
        created = await create_workflow(client, graph=GREETING_GRAPH, status="active")
        resp = await client.post(
            f"/api/workflows/{created['id']}/execute",
            json={"input": {"name": "World"}, "metadata": {"source": "test"}},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "completed"
        assert body["output"] == "HELLO, WORLD!"
        assert "error" not in body

        logs = await client.get(f"/api/workflows/{created['id']}/logs")
        assert logs.status_code == 200
        assert logs.json()[0]["run_id"] == body["run_id"]
        assert logs.json()[0]["status"] == "success"

    async def test_failed_run_is_reported(self, client):
        graph = {**GREETING_GRAPH, "nodes": [dict(n) for n in GREETING_GRAPH["nodes"]]}
        graph["nodes"][2] = {**graph["nodes"][2], "data": {"condition": "missing_name > 1"}}
        created = await create_workflow(client, graph=graph)

        resp = await client.post(f"/api/workflows/{created['id']}/execute", json={"input": {"name": "x"}})

        body = resp.json()
        assert resp.status_code == 200
        assert body["status"] == "error"
        assert "Unknown variable" in body["error"]
        assert "output" not in body

    async def test_execute_missing_workflow(self, client):
        resp = await client.post("/api/workflows/999/execute", json={"input": {}})
        assert resp.status_code == 404


@pytest.mark.asyncio
class TestTools:
    async def test_node_types(self, client):
        resp = await client.get("/api/node-types")
        types = {d["type"] for d in resp.json()}
        assert {"trigger", "decision", "function", "http_request"} <= types

    async def test_list_tools_by_context(self, client):
        resp = await client.get("/api/tools", params={"context": "canvas", "category": "canvas"})
        assert len(resp.json()) == 5

    async def test_invoke_tool(self, client):
        resp = await client.post("/api/tools/createWorkflow", json={"params": {"name": "Via tool"}})
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        listed = await client.get("/api/workflows")
        assert [w["name"] for w in listed.json()] == ["Via tool"]

    async def test_tool_failure_in_body(self, client):
        resp = await client.post("/api/tools/addNode", json={"params": {"workflowId": 1, "nodeType": "teleport"}})
        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert resp.json()["error"].startswith("Invalid node type")

    async def test_unknown_tool(self, client):
        resp = await client.post("/api/tools/nope", json={})
        assert resp.status_code == 404
