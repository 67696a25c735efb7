"""Built-in Node Executors

Registers the node types every registry starts with:
trigger, text_input, text_template, decision, function, http_request,
json_path, json_parser, text_formatter, output.

All executors return ``{port: value}``. Failures are returned as
``{"error": message}`` instead of being raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from .. import settings
from ..engine.safe_eval import (
    SafeEvalError,
    run_function,
    safe_eval,
    validate_condition_expression,
    validate_function_code,
)
from .registry import BaseNodeExecutor, NodeResult, primary_input, register_node_type

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{([^{}]+)\}\}")


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (dict, list, tuple, bool)):
        return json.dumps(value, default=str)
    return str(value)


def render_template(template: str, variables: Optional[Dict[str, Any]]) -> str:
    """Replace ``{{name}}`` placeholders with values from ``variables``.

    Names are the placeholder text with surrounding whitespace trimmed.
    Unknown names are left verbatim. Never raises.
    """
    if not template:
        return ""
    if not variables:
        return template

    def replace(match: re.Match) -> str:
        name = match.group(1).strip()
        if name in variables:
            return _stringify(variables[name])
        return match.group(0)

    return _PLACEHOLDER.sub(replace, template)


def _template_variables(data: Dict[str, Any], inputs: Dict[str, Any]) -> Dict[str, Any]:
    variables: Dict[str, Any] = dict(data.get("variables") or {})
    explicit = inputs.get("variables")
    upstream = explicit if isinstance(explicit, dict) else primary_input(inputs)
    if isinstance(upstream, dict):
        variables.update(upstream)
    elif upstream is not None:
        variables["input"] = upstream
    return variables


@register_node_type(
    node_type="trigger",
    display_name="Trigger",
    description="Entry point of a run; emits the run input unchanged",
    category="trigger",
    icon="play",
)
class TriggerNode(BaseNodeExecutor):
    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        return {"default": primary_input(inputs)}


@register_node_type(
    node_type="text_input",
    display_name="Text Input",
    description="Emits configured text (parsed as JSON when it looks like JSON), "
                "or the upstream value when no text is configured",
    category="input",
    input_schema={
        "type": "object",
        "properties": {"text": {"type": "string"}},
    },
    default_data={"text": ""},
    icon="type",
)
class TextInputNode(BaseNodeExecutor):
    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        text = data.get("text")
        if not text:
            return {"default": primary_input(inputs)}
        if isinstance(text, str) and text.lstrip().startswith(("{", "[")):
            try:
                return {"default": json.loads(text)}
            except json.JSONDecodeError:
                pass
        return {"default": text}


@register_node_type(
    node_type="text_template",
    display_name="Text Template",
    description="Substitutes {{variable}} placeholders using the upstream object",
    category="text",
    input_schema={
        "type": "object",
        "properties": {
            "template": {"type": "string"},
            "variables": {"type": "object"},
        },
        "required": ["template"],
    },
    default_data={"template": "Hello, {{name}}!"},
    icon="file-text",
)
class TextTemplateNode(BaseNodeExecutor):
    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        template = data.get("template")
        if not template:
            return {"error": "No template provided"}
        return {"default": render_template(str(template), _template_variables(data, inputs))}


@register_node_type(
    node_type="decision",
    display_name="Decision",
    description="Evaluates a condition against the upstream value and routes it "
                "to the true or false port",
    category="logic",
    input_schema={
        "type": "object",
        "properties": {
            "condition": {"type": "string"},
            "trueData": {"type": "object"},
            "falseData": {"type": "object"},
        },
        "required": ["condition"],
    },
    output_ports=["true", "false", "error"],
    default_data={"condition": "value"},
    icon="git-branch",
    color="#f59e0b",
)
class DecisionNode(BaseNodeExecutor):
    """Exactly one of ``true``, ``false`` or ``error`` is populated.

    The condition sees the upstream value as ``value``, ``input`` and
    ``data``. An empty condition is false.
    """

    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        value = primary_input(inputs)
        condition = (data.get("condition") or "").strip()

        if not condition:
            passed = False
        else:
            try:
                passed = bool(safe_eval(condition, {"value": value, "input": value, "data": value}))
            except SafeEvalError as e:
                return {"error": f'Error evaluating condition "{condition}": {e}'}

        port = "true" if passed else "false"
        extra = data.get("trueData") if passed else data.get("falseData")
        if isinstance(value, dict) and isinstance(extra, dict):
            value = {**value, **extra}
        return {port: value}

    def validate_data(self, data: Dict[str, Any]) -> List[Dict[str, str]]:
        errors = super().validate_data(data)
        condition = data.get("condition")
        if condition:
            for message in validate_condition_expression(str(condition)):
                errors.append({"field": "condition", "error": message})
        return errors


@register_node_type(
    node_type="function",
    display_name="Function",
    description="Runs a sandboxed process(input) function on the upstream value",
    category="logic",
    input_schema={
        "type": "object",
        "properties": {
            "code": {"type": "string"},
            "timeout": {"type": "number"},
        },
        "required": ["code"],
    },
    output_ports=["default", "error"],
    default_data={"code": "def process(input):\n    return input\n"},
    icon="code",
)
class FunctionNode(BaseNodeExecutor):
    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        code = data.get("code")
        if not code:
            return {"error": "No function code provided"}

        timeout = data.get("timeout") or settings.SANDBOX_TIMEOUT
        try:
            result = await asyncio.to_thread(
                run_function, str(code), primary_input(inputs), timeout=float(timeout)
            )
        except SafeEvalError as e:
            return {"error": str(e)}
        return {"default": result}

    def validate_data(self, data: Dict[str, Any]) -> List[Dict[str, str]]:
        errors = super().validate_data(data)
        if "code" in data:
            for message in validate_function_code(str(data.get("code") or "")):
                errors.append({"field": "code", "error": message})
        return errors


_HTTP_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"}


@register_node_type(
    node_type="http_request",
    display_name="HTTP Request",
    description="Calls an HTTP endpoint; {{variables}} in the URL and body are "
                "filled from the upstream object",
    category="io",
    input_schema={
        "type": "object",
        "properties": {
            "url": {"type": "string"},
            "method": {"type": "string", "enum": sorted(_HTTP_METHODS)},
            "headers": {"type": "object"},
            "body": {},
            "timeout": {"type": "number"},
        },
        "required": ["url"],
    },
    output_ports=["default", "error"],
    default_data={"url": "", "method": "GET", "headers": {}},
    icon="globe",
)
class HttpRequestNode(BaseNodeExecutor):
    """Output: ``{"status", "headers", "data"}``. Status >= 400 is an error."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        url = data.get("url")
        if not url:
            return {"error": "URL is required"}

        method = str(data.get("method") or "GET").upper()
        if method not in _HTTP_METHODS:
            return {"error": f"Unsupported HTTP method: {method}"}

        upstream = primary_input(inputs)
        variables = upstream if isinstance(upstream, dict) else {}
        headers = {str(k): str(v) for k, v in (data.get("headers") or {}).items()}
        timeout = float(data.get("timeout") or settings.HTTP_NODE_DEFAULT_TIMEOUT)

        request_kwargs: Dict[str, Any] = {"headers": headers}
        body = data.get("body")
        if method not in ("GET", "HEAD"):
            if isinstance(body, str) and body:
                request_kwargs["content"] = render_template(body, variables)
            elif body is not None:
                request_kwargs["json"] = body
            elif upstream is not None:
                request_kwargs["json"] = upstream

        target = render_template(str(url), variables)
        logger.info(f"HTTP node: {method} {target}")

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.request(method, target, **request_kwargs)
        except httpx.TimeoutException:
            return {"error": f"HTTP request timed out after {timeout}s"}
        except httpx.HTTPError as e:
            return {"error": f"HTTP request failed: {e}"}

        if response.status_code >= 400:
            return {
                "error": f"HTTP request failed with status {response.status_code}: "
                         f"{response.text[:500]}"
            }

        return {
            "default": {
                "status": response.status_code,
                "headers": dict(response.headers),
                "data": _parse_body(response),
            }
        }

    def validate_data(self, data: Dict[str, Any]) -> List[Dict[str, str]]:
        errors = super().validate_data(data)
        method = data.get("method")
        if method and str(method).upper() not in _HTTP_METHODS:
            errors.append({"field": "method", "error": f"Unsupported HTTP method: {method}"})
        return errors


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


_SEGMENT = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_INDEX = re.compile(r"\[(\d+)\]")
_MISSING = object()


def extract_path(value: Any, path: str) -> Any:
    """Follow a dotted / indexed path such as ``$.items[0].name``.

    Returns the ``_MISSING`` sentinel when any step does not resolve.
    """
    normalized = re.sub(r"^\$\.?", "", path.strip())
    if not normalized:
        return value

    current = value
    for segment in normalized.split("."):
        match = _SEGMENT.match(segment)
        if match is None:
            return _MISSING
        key, indexes = match.groups()
        if key:
            if not isinstance(current, dict) or key not in current:
                return _MISSING
            current = current[key]
        for index in _INDEX.findall(indexes):
            position = int(index)
            if not isinstance(current, list) or position >= len(current):
                return _MISSING
            current = current[position]
    return current


@register_node_type(
    node_type="json_path",
    display_name="JSON Path",
    description="Extracts a value from the upstream object by dotted path",
    category="data",
    input_schema={
        "type": "object",
        "properties": {
            "path": {"type": "string"},
            "returnFirst": {"type": "boolean"},
            "defaultValue": {},
        },
        "required": ["path"],
    },
    output_ports=["default", "error"],
    default_data={"path": "$", "returnFirst": False},
    icon="braces",
)
class JsonPathNode(BaseNodeExecutor):
    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        path = str(data.get("path") or "$")
        result = extract_path(primary_input(inputs), path)

        if result is _MISSING:
            if "defaultValue" in data:
                return {"default": data["defaultValue"]}
            return {"error": f"Path '{path}' not found"}

        if data.get("returnFirst") and isinstance(result, list) and result:
            result = result[0]
        return {"default": result}


@register_node_type(
    node_type="json_parser",
    display_name="JSON Parser",
    description="Parses the upstream JSON text into an object",
    category="data",
    input_schema={
        "type": "object",
        "properties": {"returnErrorObject": {"type": "boolean"}},
    },
    output_ports=["default", "error"],
    default_data={"returnErrorObject": False},
    icon="file-json",
)
class JsonParserNode(BaseNodeExecutor):
    """Parse JSON text. Values that are already structured pass through.

    With ``returnErrorObject`` a parse failure is emitted on ``default`` as
    ``{"parsed_data": None, "error": message}`` instead of on ``error``.
    """

    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        text = primary_input(inputs)
        if isinstance(text, (dict, list)):
            return {"default": text}
        if text is None or (isinstance(text, str) and not text.strip()):
            text = "{}"

        try:
            return {"default": json.loads(text)}
        except (TypeError, ValueError) as e:
            message = f"Failed to parse JSON: {e}"
            if data.get("returnErrorObject"):
                return {"default": {"parsed_data": None, "error": message}}
            return {"error": message}


_WORD = re.compile(r"\w\S*")

_TEXT_FORMATS = {
    "uppercase": str.upper,
    "lowercase": str.lower,
    "titlecase": lambda text: _WORD.sub(lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), text),
    "trim": str.strip,
}


@register_node_type(
    node_type="text_formatter",
    display_name="Text Formatter",
    description="Changes the case of the upstream text and adds a prefix or suffix",
    category="text",
    input_schema={
        "type": "object",
        "properties": {
            "formatType": {"type": "string", "enum": sorted(_TEXT_FORMATS)},
            "addPrefix": {"type": "string"},
            "addSuffix": {"type": "string"},
        },
    },
    output_ports=["default", "error"],
    default_data={"formatType": "uppercase", "addPrefix": "", "addSuffix": ""},
    icon="case-sensitive",
)
class TextFormatterNode(BaseNodeExecutor):
    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        value = primary_input(inputs)
        if value is None or value == "":
            return {"error": "No text input provided"}

        text = _stringify(value)
        format_type = data.get("formatType")
        if format_type in _TEXT_FORMATS:
            text = _TEXT_FORMATS[format_type](text)
        elif format_type:
            return {"error": f"Unknown format type: {format_type}"}

        return {"default": f"{data.get('addPrefix') or ''}{text}{data.get('addSuffix') or ''}"}


@register_node_type(
    node_type="output",
    display_name="Output",
    description="Terminal node; emits the upstream value, optionally as JSON text",
    category="output",
    input_schema={
        "type": "object",
        "properties": {"format": {"type": "string", "enum": ["raw", "json"]}},
    },
    default_data={"format": "raw"},
    icon="log-out",
)
class OutputNode(BaseNodeExecutor):
    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        value = primary_input(inputs)
        if data.get("format") == "json":
            return {"default": json.dumps(value, default=str, ensure_ascii=False)}
        return {"default": value}
