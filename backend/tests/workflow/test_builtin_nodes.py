"""Tests for the built-in node executors."""

import json

import httpx
import pytest

from workflow.nodes import create_node_registry
from workflow.nodes.builtin import extract_path, render_template


async def run_node(registry, node_type, data=None, value=None, inputs=None):
    executor = registry.get(node_type)
    return await executor.execute(data or {}, inputs if inputs is not None else {"input": value})


class TestRenderTemplate:
    def test_substitution(self):
        assert render_template("Hello, {{name}}!", {"name": "World"}) == "Hello, World!"

    def test_whitespace_in_placeholder(self):
        assert render_template("{{ name }}", {"name": "x"}) == "x"

    def test_unknown_left_verbatim(self):
        assert render_template("Hi {{who}}", {"name": "x"}) == "Hi {{who}}"

    def test_structured_values_are_json(self):
        rendered = render_template("{{items}} {{flag}} {{nothing}}", {"items": [1, 2], "flag": True, "nothing": None})
        assert rendered == "[1, 2] true null"

    def test_empty(self):
        assert render_template("", {"a": 1}) == ""
        assert render_template("{{a}}", None) == "{{a}}"


@pytest.mark.asyncio
class TestSimpleNodes:
    async def test_trigger_passes_input(self, node_registry):
        assert await run_node(node_registry, "trigger", value={"name": "World"}) == {"default": {"name": "World"}}

    async def test_text_input_parses_json(self, node_registry):
        result = await run_node(node_registry, "text_input", {"text": '{"a": 1}'})
        assert result == {"default": {"a": 1}}

    async def test_text_input_plain_text(self, node_registry):
        assert await run_node(node_registry, "text_input", {"text": "{not json"}) == {"default": "{not json"}

    async def test_text_template(self, node_registry):
        result = await run_node(node_registry, "text_template", {"template": "Hello, {{name}}!"}, {"name": "World"})
        assert result == {"default": "Hello, World!"}

    async def test_text_template_scalar_input(self, node_registry):
        result = await run_node(node_registry, "text_template", {"template": "Got {{input}}"}, 5)
        assert result == {"default": "Got 5"}

    async def test_text_template_without_template(self, node_registry):
        assert await run_node(node_registry, "text_template", {"template": ""}, {}) == {"error": "No template provided"}

    async def test_output_json(self, node_registry):
        result = await run_node(node_registry, "output", {"format": "json"}, {"a": 1})
        assert json.loads(result["default"]) == {"a": 1}


@pytest.mark.asyncio
class TestDecisionNode:
    async def test_true_branch(self, node_registry):
        result = await run_node(node_registry, "decision", {"condition": '"Hello" in value'}, "Hello, World!")
        assert result == {"true": "Hello, World!"}

    async def test_false_branch(self, node_registry):
        result = await run_node(node_registry, "decision", {"condition": "value > 10"}, 3)
        assert result == {"false": 3}

    async def test_exactly_one_port(self, node_registry):
        for value in (0, 5, 50):
            result = await run_node(node_registry, "decision", {"condition": "value > 10"}, value)
            assert len(result) == 1

    async def test_empty_condition_is_false(self, node_registry):
        assert await run_node(node_registry, "decision", {"condition": ""}, "x") == {"false": "x"}

    async def test_bad_condition_goes_to_error(self, node_registry):
        result = await run_node(node_registry, "decision", {"condition": "value.bogus()"}, "x")
        assert list(result) == ["error"]
        assert result["error"].startswith('Error evaluating condition "value.bogus()"')

    async def test_branch_data_merged(self, node_registry):
        data = {"condition": "value.score > 5", "trueData": {"grade": "pass"}, "falseData": {"grade": "fail"}}
        result = await run_node(node_registry, "decision", data, {"score": 9})
        assert result == {"true": {"score": 9, "grade": "pass"}}


@pytest.mark.asyncio
class TestFunctionNode:
    async def test_runs_code(self, node_registry):
        result = await run_node(node_registry, "function", {"code": "return input.upper()"}, "Hello, World!")
        assert result == {"default": "HELLO, WORLD!"}

    async def test_error(self, node_registry):
        result = await run_node(node_registry, "function", {"code": "return input['missing']"}, {})
        assert "error" in result

    async def test_missing_code(self, node_registry):
        assert await run_node(node_registry, "function", {}, 1) == {"error": "No function code provided"}

    async def test_timeout(self, node_registry):
        result = await run_node(node_registry, "function", {"code": "while True:\n    pass", "timeout": 0.2}, None)
        assert "error" in result


@pytest.mark.asyncio
class TestJsonPathNode:
    async def test_extract(self, node_registry):
        value = {"items": [{"name": "first"}, {"name": "second"}]}
        assert await run_node(node_registry, "json_path", {"path": "$.items[1].name"}, value) == {"default": "second"}

    async def test_missing_with_default(self, node_registry):
        result = await run_node(node_registry, "json_path", {"path": "$.nope", "defaultValue": 0}, {})
        assert result == {"default": 0}

    async def test_missing_without_default(self, node_registry):
        assert await run_node(node_registry, "json_path", {"path": "$.nope"}, {}) == {"error": "Path '$.nope' not found"}

    async def test_return_first(self, node_registry):
        result = await run_node(node_registry, "json_path", {"path": "$.tags", "returnFirst": True}, {"tags": ["a", "b"]})
        assert result == {"default": "a"}


def test_extract_path_root():
    assert extract_path({"a": 1}, "$") == {"a": 1}
    assert extract_path({"a": [1]}, "a[0]") == 1


@pytest.mark.asyncio
class TestJsonParserNode:
    async def test_parses_text(self, node_registry):
        result = await run_node(node_registry, "json_parser", value='{"a": [1, 2]}')
        assert result == {"default": {"a": [1, 2]}}

    async def test_structured_value_passes_through(self, node_registry):
        assert await run_node(node_registry, "json_parser", value={"a": 1}) == {"default": {"a": 1}}

    async def test_empty_input_is_empty_object(self, node_registry):
        assert await run_node(node_registry, "json_parser", value="") == {"default": {}}

    async def test_invalid_json(self, node_registry):
        result = await run_node(node_registry, "json_parser", value="{not json")
        assert result["error"].startswith("Failed to parse JSON")

    async def test_error_object(self, node_registry):
        result = await run_node(node_registry, "json_parser", {"returnErrorObject": True}, "{not json")
        assert result["default"]["parsed_data"] is None
        assert result["default"]["error"].startswith("Failed to parse JSON")


@pytest.mark.asyncio
class TestTextFormatterNode:
    @pytest.mark.parametrize(
        "format_type, expected",
        [
            ("uppercase", "  HELLO WORLD "),
            ("lowercase", "  hello world "),
            ("titlecase", "  Hello World "),
            ("trim", "hELLO wORLD"),
        ],
    )
    async def test_formats(self, node_registry, format_type, expected):
        result = await run_node(node_registry, "text_formatter", {"formatType": format_type}, "  hELLO wORLD ")
        assert result == {"default": expected}

    async def test_prefix_and_suffix(self, node_registry):
        data = {"formatType": "trim", "addPrefix": "<", "addSuffix": ">"}
        assert await run_node(node_registry, "text_formatter", data, " x ") == {"default": "<x>"}

    async def test_structured_value_is_json(self, node_registry):
        result = await run_node(node_registry, "text_formatter", {"formatType": "uppercase"}, {"a": "b"})
        assert result == {"default": '{"A": "B"}'}

    async def test_missing_text(self, node_registry):
        assert await run_node(node_registry, "text_formatter", {}, None) == {"error": "No text input provided"}

    async def test_unknown_format(self, node_registry):
        result = await run_node(node_registry, "text_formatter", {"formatType": "reverse"}, "x")
        assert result == {"error": "Unknown format type: reverse"}


def _registry_with(handler):
    return create_node_registry(http_request={"transport": httpx.MockTransport(handler)})


@pytest.mark.asyncio
class TestHttpRequestNode:
    async def test_get_with_templated_url(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["method"] = request.method
            return httpx.Response(200, json={"ok": True})

        registry = _registry_with(handler)
        result = await run_node(registry, "http_request", {"url": "https://api.test/users/{{id}}"}, {"id": 42})

        assert seen == {"url": "https://api.test/users/42", "method": "GET"}
        assert result["default"]["status"] == 200
        assert result["default"]["data"] == {"ok": True}

    async def test_post_sends_upstream_as_json(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, text="created")

        registry = _registry_with(handler)
        result = await run_node(registry, "http_request", {"url": "https://api.test/items", "method": "POST"}, {"a": 1})

        assert seen["body"] == {"a": 1}
        assert result["default"]["data"] == "created"

    async def test_error_status(self):
        registry = _registry_with(lambda request: httpx.Response(404, text="nope"))
        result = await run_node(registry, "http_request", {"url": "https://api.test/x"}, None)
        assert result == {"error": "HTTP request failed with status 404: nope"}

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        registry = _registry_with(handler)
        result = await run_node(registry, "http_request", {"url": "https://api.test/x"}, None)
        assert result["error"].startswith("HTTP request failed")

    async def test_missing_url(self, node_registry):
        assert await run_node(node_registry, "http_request", {"url": ""}, None) == {"error": "URL is required"}
