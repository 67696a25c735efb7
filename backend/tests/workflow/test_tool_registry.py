"""Tests for the tool registry."""

import logging

import pytest

from workflow.errors import ToolValidationError
from workflow.tools import Tool, ToolRegistry, ToolResult


def make_tool(name="echo", category="test", contexts=None, parameters=None, execute=None, **kwargs):
    async def echo(params, options):
        return ToolResult.ok("echoed", {"params": params, "options": options})

    return Tool(
        name=name,
        description=f"{name} tool",
        category=category,
        contexts=contexts,
        parameters=parameters or {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
        execute=execute or echo,
        **kwargs,
    )


class TestRegistration:
    def test_register_and_get(self):
        registry = ToolRegistry()
        tool = make_tool()

        assert registry.register(tool) is True
        assert registry.get("echo") is tool
        assert "echo" in registry
        assert len(registry) == 1

    def test_names_are_unique(self, caplog):
        registry = ToolRegistry()
        registry.register(make_tool())
        replacement = make_tool()

        with caplog.at_level(logging.WARNING, logger="tools"):
            registry.register(replacement)

        assert len(registry) == 1
        assert registry.get("echo") is replacement

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": ""},
            {"category": ""},
            {"parameters": {"type": "not-a-type"}},
        ],
    )
    def test_validation_refuses_bad_tools(self, overrides):
        registry = ToolRegistry()
        assert registry.register(make_tool(**overrides)) is False
        assert len(registry) == 0

    def test_missing_execute_refused(self):
        registry = ToolRegistry()
        tool = make_tool()
        tool.execute = None
        assert registry.register(tool) is False

    def test_validation_can_be_disabled(self):
        registry = ToolRegistry(validate_tools=False)
        assert registry.register(make_tool(category="")) is True

    def test_clear(self):
        registry = ToolRegistry()
        registry.register(make_tool())
        registry.clear()
        assert len(registry) == 0


class TestQueries:
    @pytest.fixture
    def registry(self):
        registry = ToolRegistry()
        registry.register(make_tool("everywhere", category="platform"))
        registry.register(make_tool("canvas_only", category="canvas", contexts=["canvas"]))
        registry.register(make_tool("chat_only", category="agent", contexts=["chat"]))
        return registry

    def test_by_category(self, registry):
        assert [t.name for t in registry.tools_by_category("canvas")] == ["canvas_only"]

    def test_by_context(self, registry):
        assert [t.name for t in registry.tools_by_context("canvas")] == ["everywhere", "canvas_only"]
        assert [t.name for t in registry.tools_by_context("chat")] == ["everywhere", "chat_only"]

    def test_openai_functions(self, registry):
        functions = registry.as_openai_functions(context="chat")
        assert [f["name"] for f in functions] == ["everywhere", "chat_only"]
        assert functions[0]["parameters"]["required"] == ["text"]


@pytest.mark.asyncio
class TestExecute:
    async def test_success(self):
        registry = ToolRegistry()
        registry.register(make_tool())

        result = await registry.execute("echo", {"text": "hi"}, {"source": "test"})

        assert result.success
        assert result.data == {"params": {"text": "hi"}, "options": {"source": "test"}}

    async def test_unknown_tool(self):
        result = await ToolRegistry().execute("nope", {})
        assert result.success is False
        assert result.error == "Tool 'nope' not found"

    async def test_inactive_tool(self):
        registry = ToolRegistry()
        registry.register(make_tool(active=False))

        result = await registry.execute("echo", {"text": "hi"})
        assert result.error == "Tool 'echo' is not active"

    async def test_schema_validation(self):
        registry = ToolRegistry()
        registry.register(make_tool())

        missing = await registry.execute("echo", {})
        wrong_type = await registry.execute("echo", {"text": 5})

        assert missing.success is False
        assert missing.error.startswith("Invalid parameters for 'echo'")
        assert "'text' is a required property" in missing.error
        assert wrong_type.success is False

    async def test_exceptions_become_failures(self):
        async def boom(params, options):
            raise RuntimeError("disk on fire")

        registry = ToolRegistry()
        registry.register(make_tool(execute=boom))

        result = await registry.execute("echo", {"text": "x"})
        assert result.success is False
        assert result.error == "Tool 'echo' failed: disk on fire"

    async def test_tool_validation_error_message_is_kept(self):
        async def reject(params, options):
            raise ToolValidationError("Workflow with ID 3 not found")

        registry = ToolRegistry()
        registry.register(make_tool(execute=reject))

        result = await registry.execute("echo", {"text": "x"})
        assert result.error == "Workflow with ID 3 not found"

    async def test_dict_results_are_coerced(self):
        async def plain(params, options):
            return {"success": True, "message": "ok"}

        registry = ToolRegistry()
        registry.register(make_tool(execute=plain))

        result = await registry.execute("echo", {"text": "x"})
        assert isinstance(result, ToolResult)
        assert result.message == "ok"


@pytest.mark.asyncio
class TestDirectToolCalls:
    async def test_tool_execute_never_raises(self):
        async def reject(params, options):
            raise ToolValidationError("Workflow with ID 999 not found")

        result = await make_tool(execute=reject).execute({"text": "x"}, {})

        assert result.success is False
        assert result.error == "Workflow with ID 999 not found"

    async def test_builtin_tool_called_directly(self, tool_registry):
        result = await tool_registry.get("getWorkflowDetails").execute({"workflowId": 999}, {})

        assert isinstance(result, ToolResult)
        assert result.success is False
        assert result.error == "Workflow with ID 999 not found"

    async def test_options_default_to_empty(self):
        result = await make_tool().execute({"text": "hi"})
        assert result.data == {"params": {"text": "hi"}, "options": {}}
