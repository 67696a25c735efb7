"""Node Executor Registry

Maps a node type name to the executor that implements it.

Key Components:
- NodeDefinition: Metadata for node types
- BaseNodeExecutor: Abstract base class for all executors
- register_node_type: Decorator recording built-in executor classes
- NodeExecutorRegistry: Explicitly constructed registry instance
- create_node_registry: Factory returning a registry with every built-in

Registries are created by the caller and passed into the engine and the
tool layer; there is no module-level registry instance.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from ..errors import RegistrationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="BaseNodeExecutor")

NodeResult = Dict[str, Any]


def primary_input(inputs: Optional[Dict[str, Any]]) -> Any:
    """The value on the ``input`` port, else the first port's value, else None."""
    if not inputs:
        return None
    if "input" in inputs:
        return inputs["input"]
    return next(iter(inputs.values()))


@dataclass
class NodeDefinition:
    """Metadata definition for a node type.

    Attributes:
        node_type: Unique identifier for the node type (e.g., "decision")
        display_name: Human-readable name for UI display
        description: Brief description of node functionality
        category: Category for grouping (e.g., "logic", "data", "io")
        input_schema: JSON schema describing the node's ``data``
        output_ports: Names of the output ports the executor may populate
        default_data: Data merged into new nodes of this type
        icon: Optional icon identifier for UI rendering
        color: Optional color code for UI theming
    """

    node_type: str
    display_name: str
    description: str
    category: str
    input_schema: Dict[str, Any] = field(default_factory=dict)
    output_ports: List[str] = field(default_factory=lambda: ["default"])
    default_data: Dict[str, Any] = field(default_factory=dict)
    icon: Optional[str] = None
    color: Optional[str] = None

    def __post_init__(self):
        if not self.node_type:
            raise RegistrationError("node_type cannot be empty")
        if not self.display_name:
            raise RegistrationError("display_name cannot be empty")
        if not self.category:
            raise RegistrationError("category cannot be empty")
        if not isinstance(self.input_schema, dict):
            raise RegistrationError("input_schema must be a dictionary")
        if not isinstance(self.default_data, dict):
            raise RegistrationError("default_data must be a dictionary")
        if not self.output_ports:
            raise RegistrationError("output_ports cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.node_type,
            "display_name": self.display_name,
            "description": self.description,
            "category": self.category,
            "input_schema": self.input_schema,
            "output_ports": list(self.output_ports),
            "default_data": dict(self.default_data),
            "icon": self.icon,
            "color": self.color,
        }


class BaseNodeExecutor(ABC):
    """Abstract base class for node executors.

    An executor turns a node's ``data`` and the values arriving on its input
    ports into a mapping of output port name to value. Executors hold no
    per-run state; the same instance serves every run.
    """

    definition: NodeDefinition

    @property
    def node_type(self) -> str:
        return self.definition.node_type

    @abstractmethod
    async def execute(self, data: Dict[str, Any], inputs: Dict[str, Any]) -> NodeResult:
        """Execute the node's logic.

        Args:
            data: The node's configuration bag
            inputs: Mapping of input port name to upstream value

        Returns:
            Mapping of output port name to value; ``{"error": msg}`` on failure
        """
        pass

    def validate_data(self, data: Dict[str, Any]) -> List[Dict[str, str]]:
        """Default validation: required keys from ``input_schema``.

        Subclasses can override this to provide specific validation logic.
        """
        errors = []
        required_fields = self.definition.input_schema.get("required", [])
        for field_name in required_fields:
            if field_name not in data:
                errors.append({
                    "field": field_name,
                    "error": f"Required field '{field_name}' is missing",
                })
        return errors


# Built-in executor classes recorded by @register_node_type, in definition order
BUILTIN_NODE_CLASSES: Dict[str, Type[BaseNodeExecutor]] = {}


def register_node_type(
    node_type: str,
    display_name: str,
    description: str,
    category: str,
    input_schema: Optional[Dict[str, Any]] = None,
    output_ports: Optional[List[str]] = None,
    default_data: Optional[Dict[str, Any]] = None,
    icon: Optional[str] = None,
    color: Optional[str] = None,
) -> Callable[[Type[T]], Type[T]]:
    """Decorator to declare a built-in node type.

    Attaches a NodeDefinition to the class and records it so that
    ``create_node_registry`` can instantiate it.

    Example:
        @register_node_type(
            node_type="uppercase",
            display_name="Uppercase",
            description="Upper-cases its input",
            category="text",
        )
        class UppercaseNode(BaseNodeExecutor):
            async def execute(self, data, inputs):
                return {"default": str(primary_input(inputs)).upper()}
    """

    def decorator(cls: Type[T]) -> Type[T]:
        cls.definition = NodeDefinition(
            node_type=node_type,
            display_name=display_name,
            description=description,
            category=category,
            input_schema=input_schema or {"type": "object", "properties": {}},
            output_ports=output_ports or ["default"],
            default_data=default_data or {},
            icon=icon,
            color=color,
        )
        BUILTIN_NODE_CLASSES[node_type] = cls
        return cls

    return decorator


class NodeExecutorRegistry:
    """Name-keyed catalog of node executors."""

    def __init__(self):
        self._executors: Dict[str, BaseNodeExecutor] = {}

    def register(self, executor: BaseNodeExecutor) -> bool:
        """Register an executor under its definition's node type.

        Re-registering a type replaces the previous executor and logs a
        warning. Executors without a valid definition are refused.

        Returns:
            True if registered, False if refused
        """
        definition = getattr(executor, "definition", None)
        if not isinstance(definition, NodeDefinition):
            logger.error(
                f"Refusing node executor {type(executor).__name__}: missing NodeDefinition"
            )
            return False
        if not callable(getattr(executor, "execute", None)):
            logger.error(f"Refusing node executor for '{definition.node_type}': no execute()")
            return False

        node_type = definition.node_type
        if node_type in self._executors:
            previous = type(self._executors[node_type]).__name__
            logger.warning(
                f"Node type '{node_type}' already registered by {previous}, overwriting "
                f"with {type(executor).__name__}"
            )

        self._executors[node_type] = executor
        logger.debug(f"Registered node type: {node_type} ({definition.display_name})")
        return True

    def unregister(self, node_type: str) -> bool:
        return self._executors.pop(node_type, None) is not None

    def get(self, node_type: str) -> Optional[BaseNodeExecutor]:
        return self._executors.get(node_type)

    def get_definition(self, node_type: str) -> Optional[NodeDefinition]:
        executor = self._executors.get(node_type)
        return executor.definition if executor else None

    def is_registered(self, node_type: str) -> bool:
        return node_type in self._executors

    def node_types(self) -> List[str]:
        return list(self._executors.keys())

    def list_node_types(self) -> List[NodeDefinition]:
        return [executor.definition for executor in self._executors.values()]

    def list_node_types_by_category(self, category: str) -> List[NodeDefinition]:
        return [
            executor.definition
            for executor in self._executors.values()
            if executor.definition.category == category
        ]

    def __contains__(self, node_type: str) -> bool:
        return node_type in self._executors

    def __len__(self) -> int:
        return len(self._executors)


def create_node_registry(**executor_options: Any) -> NodeExecutorRegistry:
    """Build a fresh registry holding every built-in node executor.

    Args:
        executor_options: Keyword arguments keyed by node type, passed to that
            executor's constructor (e.g. ``http_request={"transport": ...}``)
    """
    # Import for the @register_node_type side effects
    from . import builtin  # noqa: F401

    registry = NodeExecutorRegistry()
    for node_type, cls in BUILTIN_NODE_CLASSES.items():
        options = executor_options.get(node_type) or {}
        registry.register(cls(**options))
    return registry
