"""Tests for the built-in agent, workflow, canvas and platform tools."""

import pytest

from workflow.tools import create_tool_registry


async def call(tool_registry, tool_name, **params):
    return await tool_registry.execute(tool_name, params)


@pytest.mark.asyncio
class TestAgentTools:
    async def test_create_and_list(self, tool_registry):
        created = await call(tool_registry, "createAgent", name="Helper")
        assert created.success
        assert created.data["type"] == "custom"
        assert created.data["icon"] == "brain"
        assert created.data["status"] == "active"

        await call(tool_registry, "createAgent", name="Sleeper", status="inactive")
        listed = await call(tool_registry, "listAgents")
        assert [a["name"] for a in listed.data] == ["Helper"]

        everything = await call(tool_registry, "listAgents", includeInactive=True)
        assert len(everything.data) == 2

    async def test_agent_details_with_workflows_and_logs(self, tool_registry, storage, greeting_graph):
        agent = (await call(tool_registry, "createAgent", name="Helper")).data
        workflow = await storage.create_workflow(
            "Greeter", graph=greeting_graph, status="active", agent_id=agent["id"]
        )
        await call(tool_registry, "executeWorkflow", workflowId=workflow.id, input={"name": "A"})

        details = await call(tool_registry, "getAgentDetails", agentId=agent["id"], includeLogs=True)

        assert details.success
        assert [w["name"] for w in details.data["workflows"]] == ["Greeter"]
        assert details.data["recent_logs"][0]["status"] == "success"

    async def test_unknown_agent(self, tool_registry):
        result = await call(tool_registry, "getAgentDetails", agentId=42)
        assert result.success is False
        assert result.error == "Agent with ID 42 not found"


@pytest.mark.asyncio
class TestWorkflowTools:
    async def test_create_workflow(self, tool_registry):
        result = await call(tool_registry, "createWorkflow", name="Flow")
        assert result.success
        assert result.data["status"] == "draft"
        assert result.data["graph"] == {"nodes": [], "edges": []}

    async def test_create_workflow_unknown_agent(self, tool_registry, storage):
        result = await call(tool_registry, "createWorkflow", name="Flow", agentId=9)
        assert result.success is False
        assert "Agent with ID 9 not found" in result.error
        assert await storage.list_workflows() == []

    async def test_list_excludes_inactive(self, tool_registry):
        await call(tool_registry, "createWorkflow", name="On", status="active")
        await call(tool_registry, "createWorkflow", name="Off", status="inactive")

        listed = await call(tool_registry, "listWorkflows")
        assert [w["name"] for w in listed.data] == ["On"]
        assert "graph" not in listed.data[0]

    async def test_details(self, tool_registry, storage, greeting_graph):
        workflow = await storage.create_workflow("Greeter", graph=greeting_graph)
        result = await call(tool_registry, "getWorkflowDetails", workflowId=workflow.id)

        assert result.data["structure"] == {
            "input_nodes": 1,
            "output_nodes": 1,
            "processing_nodes": 3,
            "connection_count": 4,
        }
        assert result.data["node_types"]["decision"] == 1
        assert len(result.data["nodes"]) == 5

    async def test_update(self, tool_registry):
        created = (await call(tool_registry, "createWorkflow", name="Flow")).data
        result = await call(tool_registry, "updateWorkflow", workflowId=created["id"], status="active")

        assert result.success
        assert result.data["status"] == "active"

        empty = await call(tool_registry, "updateWorkflow", workflowId=created["id"])
        assert empty.error == "No fields to update"

    async def test_execute_requires_active(self, tool_registry, storage, greeting_graph):
        workflow = await storage.create_workflow("Greeter", graph=greeting_graph)
        result = await call(tool_registry, "executeWorkflow", workflowId=workflow.id, input={"name": "A"})

        assert result.success is False
        assert result.error == f"Workflow with ID {workflow.id} is not active (status: draft)"
        assert await storage.list_logs() == []

    async def test_execute_mirrors_run(self, tool_registry, storage, greeting_graph):
        workflow = await storage.create_workflow("Greeter", graph=greeting_graph, status="active")

        ok = await call(tool_registry, "executeWorkflow", workflowId=workflow.id, input={"name": "World"}, debug=True)
        assert ok.success
        assert ok.data["output"] == "HELLO, WORLD!"
        assert len(ok.data["node_states"]) == 5

        await storage.update_node(workflow.id, "check", data={"condition": "value.bogus()"})
        failed = await call(tool_registry, "executeWorkflow", workflowId=workflow.id, input={"name": "World"})
        assert failed.success is False
        assert failed.data["status"] == "error"
        assert "Error evaluating condition" in failed.error


@pytest.mark.asyncio
class TestCanvasTools:
    async def test_add_node_merges_defaults(self, tool_registry, storage):
        workflow = await storage.create_workflow("Flow")
        result = await call(
            tool_registry, "addNode",
            workflowId=workflow.id, nodeType="text_template", nodeId="greet",
            position={"x": 5, "y": 6}, data={"variables": {"name": "Ada"}},
        )

        assert result.success
        node = await storage.get_node(workflow.id, "greet")
        assert node.data == {"template": "Hello, {{name}}!", "variables": {"name": "Ada"}}
        assert node.position.x == 5

    async def test_add_node_generates_id(self, tool_registry, storage):
        workflow = await storage.create_workflow("Flow")
        result = await call(tool_registry, "addNode", workflowId=workflow.id, nodeType="output")
        assert result.data["id"].startswith("output_")

    async def test_add_node_invalid_type(self, tool_registry, storage):
        workflow = await storage.create_workflow("Flow")
        result = await call(tool_registry, "addNode", workflowId=workflow.id, nodeType="teleport")

        assert result.success is False
        assert result.error.startswith('Invalid node type: "teleport"')
        assert (await storage.get_workflow(workflow.id)).graph.nodes == []

    async def test_add_node_duplicate_id(self, tool_registry, storage):
        workflow = await storage.create_workflow("Flow")
        await call(tool_registry, "addNode", workflowId=workflow.id, nodeType="output", nodeId="o")
        again = await call(tool_registry, "addNode", workflowId=workflow.id, nodeType="output", nodeId="o")
        assert again.success is False

    async def test_update_node_parameters(self, tool_registry, storage):
        workflow = await storage.create_workflow("Flow")
        await call(tool_registry, "addNode", workflowId=workflow.id, nodeType="decision", nodeId="d")

        result = await call(
            tool_registry, "updateNodeParameters",
            workflowId=workflow.id, nodeId="d", parameters={"condition": "value > 1"}, reason="tighten",
        )

        assert result.success
        assert "(Reason: tighten)" in result.message
        assert (await storage.get_node(workflow.id, "d")).data["condition"] == "value > 1"

    async def test_update_node_type_must_be_registered(self, tool_registry, storage):
        workflow = await storage.create_workflow("Flow")
        await call(tool_registry, "addNode", workflowId=workflow.id, nodeType="output", nodeId="o")

        bad = await call(
            tool_registry, "updateNodeParameters",
            workflowId=workflow.id, nodeId="o", parameters={"type": "teleport"},
        )
        good = await call(
            tool_registry, "updateNodeParameters",
            workflowId=workflow.id, nodeId="o", parameters={"type": "text_input"},
        )

        assert bad.success is False
        assert good.success
        assert (await storage.get_node(workflow.id, "o")).type == "text_input"

    async def test_connect_and_remove(self, tool_registry, storage):
        workflow = await storage.create_workflow("Flow")
        await call(tool_registry, "addNode", workflowId=workflow.id, nodeType="decision", nodeId="d")
        await call(tool_registry, "addNode", workflowId=workflow.id, nodeType="output", nodeId="o")

        bad_port = await call(
            tool_registry, "connectNodes", workflowId=workflow.id, source="d", target="o", sourceHandle="maybe"
        )
        assert bad_port.success is False

        connected = await call(
            tool_registry, "connectNodes", workflowId=workflow.id, source="d", target="o", sourceHandle="true"
        )
        assert connected.success
        assert connected.data["id"] == "e-d-true-o"

        removed = await call(tool_registry, "removeNode", workflowId=workflow.id, nodeId="o")
        assert removed.success
        graph = (await storage.get_workflow(workflow.id)).graph
        assert [n.id for n in graph.nodes] == ["d"]
        assert graph.edges == []

    async def test_validate_workflow(self, tool_registry, storage, greeting_graph):
        workflow = await storage.create_workflow("Greeter", graph=greeting_graph)
        result = await call(tool_registry, "validateWorkflow", workflowId=workflow.id)

        assert result.success
        assert result.data["valid"] is True


@pytest.mark.asyncio
class TestPlatformTools:
    async def test_get_tools_filters_compose(self, tool_registry):
        canvas = await call(tool_registry, "getTools", context="canvas", category="canvas")
        assert {t["name"] for t in canvas.data} == {
            "addNode", "updateNodeParameters", "connectNodes", "removeNode", "validateWorkflow",
        }

        chat_canvas = await call(tool_registry, "getTools", context="chat", category="canvas")
        assert chat_canvas.data == []

        chat_all = await call(tool_registry, "getTools", context="chat", category="all")
        assert "addNode" not in {t["name"] for t in chat_all.data}
        assert "createWorkflow" in {t["name"] for t in chat_all.data}

    async def test_get_config(self, tool_registry):
        result = await call(tool_registry, "getConfig")
        assert result.data["engine"]["available"] is True
        assert "decision" in result.data["node_types"]
        assert result.data["tool_count"] == len(tool_registry)

    async def test_list_node_types(self, tool_registry):
        result = await call(tool_registry, "listNodeTypes", category="logic")
        assert {d["type"] for d in result.data} == {"decision", "function"}

    async def test_registry_without_engine(self, storage):
        registry = create_tool_registry(storage)
        result = await registry.execute("executeWorkflow", {"workflowId": 1})
        assert result.error == "Workflow execution is not available"
