"""Tool Registry

A name-keyed, validated catalog of operations on workflow and agent
entities, callable by a UI action or by an automated agent loop.

Key Components:
- Tool: name, description, category, JSON-schema parameters, execute()
- ToolResult: ``{success, message, data, error}``
- ToolContext: collaborators injected into tool bodies
- ToolRegistry: registration, lookup, context filtering, and ``execute``

``ToolRegistry.execute`` and ``Tool.execute`` never raise: unknown tools, schema
violations and exceptions escaping a tool body all come back as
``success=False``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel, ValidationError

from .. import settings
from ..errors import ToolValidationError
from ..logging_config import get_tool_logger

if TYPE_CHECKING:
    from ..engine.executor import WorkflowEngine
    from ..nodes.registry import NodeExecutorRegistry
    from ..storage import WorkflowStorage

logger = get_tool_logger()


class ToolResult(BaseModel):
    success: bool
    message: Optional[str] = None
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, message: Optional[str] = None, data: Any = None) -> "ToolResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)


ToolExecute = Callable[[Dict[str, Any], Dict[str, Any]], Awaitable[ToolResult]]


def _empty_schema() -> Dict[str, Any]:
    return {"type": "object", "properties": {}}


@dataclass
class Tool:
    """A named, schema-described operation.

    Attributes:
        name: Unique name within a registry
        description: What the tool does (shown to agents)
        category: Grouping such as "agent", "workflow", "canvas", "platform"
        parameters: JSON schema for the params object
        execute: ``async (params, options) -> ToolResult``
        contexts: Contexts the tool is offered in; None means everywhere
        active: Inactive tools stay registered but refuse to execute
    """

    name: str
    description: str
    category: str
    execute: Optional[ToolExecute]
    parameters: Dict[str, Any] = field(default_factory=_empty_schema)
    contexts: Optional[List[str]] = None
    active: bool = True

    def __post_init__(self) -> None:
        # Calling tool.execute directly never raises either.
        body = self.execute
        if body is not None:
            async def guarded(params: Dict[str, Any], options: Optional[Dict[str, Any]] = None) -> ToolResult:
                return await run_tool_body(self.name, body, params, options or {})

            self.execute = guarded

    def available_in(self, context: str) -> bool:
        return self.contexts is None or context in self.contexts

    def describe(self, include_parameters: bool = True) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "category": self.category,
        }
        if self.contexts is not None:
            result["contexts"] = list(self.contexts)
        if include_parameters:
            result["parameters"] = self.parameters or _empty_schema()
        return result

    def to_openai_function(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters or _empty_schema(),
        }


@dataclass
class ToolContext:
    """Collaborators available to tool bodies."""

    storage: "WorkflowStorage"
    engine: Optional["WorkflowEngine"] = None
    node_registry: Optional["NodeExecutorRegistry"] = None
    tool_registry: Optional["ToolRegistry"] = None


class ToolRegistry:
    """Name-keyed catalog of tools.

    Args:
        validate_tools: Refuse tools missing name, description, category or
            execute, or whose parameter schema is invalid
        allow_duplicates: Overwrite same-named tools without a warning
    """

    def __init__(self, validate_tools: Optional[bool] = None, allow_duplicates: bool = False):
        self.validate_tools = settings.TOOL_REGISTRY_VALIDATE if validate_tools is None else validate_tools
        self.allow_duplicates = allow_duplicates
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> bool:
        """Register a tool.

        Returns:
            True if registered, False if refused by validation
        """
        if self.validate_tools:
            problem = self._validation_problem(tool)
            if problem:
                logger.error(f"Refusing tool registration: {problem}")
                return False

        if tool.name in self._tools and not self.allow_duplicates:
            logger.warning(f"Tool with name '{tool.name}' already exists. Overwriting.")

        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name} ({tool.category})")
        return True

    @staticmethod
    def _validation_problem(tool: Tool) -> Optional[str]:
        if not tool.name or not tool.name.strip():
            return "Tool must have a name"
        if not tool.description or not tool.description.strip():
            return f"Tool '{tool.name}' must have a description"
        if not tool.category or not tool.category.strip():
            return f"Tool '{tool.name}' must have a category"
        if not callable(tool.execute):
            return f"Tool '{tool.name}' must have an execute function"
        try:
            Draft202012Validator.check_schema(tool.parameters or _empty_schema())
        except SchemaError as e:
            return f"Tool '{tool.name}' has an invalid parameter schema: {e.message}"
        return None

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def all_tools(self) -> List[Tool]:
        return list(self._tools.values())

    def tools_by_category(self, category: str) -> List[Tool]:
        return [tool for tool in self._tools.values() if tool.category == category]

    def tools_by_context(self, context: str) -> List[Tool]:
        """Tools offered in ``context``; tools without contexts are offered everywhere."""
        return [tool for tool in self._tools.values() if tool.available_in(context)]

    def as_openai_functions(self, context: Optional[str] = None) -> List[Dict[str, Any]]:
        tools = self.tools_by_context(context) if context else self.all_tools()
        return [tool.to_openai_function() for tool in tools]

    def clear(self) -> None:
        self._tools.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(
        self,
        name: str,
        params: Optional[Dict[str, Any]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> ToolResult:
        """Validate ``params`` against the tool's schema and run it."""
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult.fail(f"Tool '{name}' not found")
        if not tool.active:
            return ToolResult.fail(f"Tool '{name}' is not active")

        params = {} if params is None else params
        if not isinstance(params, dict):
            return ToolResult.fail(f"Parameters for '{name}' must be an object")

        errors = sorted(
            Draft202012Validator(tool.parameters or _empty_schema()).iter_errors(params),
            key=lambda e: [str(p) for p in e.path],
        )
        if errors:
            return ToolResult.fail(
                f"Invalid parameters for '{name}': " + "; ".join(e.message for e in errors)
            )

        logger.info(f"Executing tool {name}")
        return await run_tool_body(name, tool.execute, params, options or {})


async def run_tool_body(
    name: str,
    execute: ToolExecute,
    params: Dict[str, Any],
    options: Dict[str, Any],
) -> ToolResult:
    """Await a tool body; exceptions and malformed results become failures."""
    try:
        result = await execute(params, options)
    except ToolValidationError as e:
        return ToolResult.fail(str(e))
    except Exception as e:
        logger.exception(f"Tool {name} raised")
        return ToolResult.fail(f"Tool '{name}' failed: {e}")

    if isinstance(result, ToolResult):
        return result
    if isinstance(result, dict):
        try:
            return ToolResult.model_validate(result)
        except ValidationError as e:
            return ToolResult.fail(f"Tool '{name}' returned an invalid result: {e}")
    return ToolResult.fail(f"Tool '{name}' returned {type(result).__name__}, not a ToolResult")
