"""Node System: executor registry and built-in node types."""

from .registry import (
    BUILTIN_NODE_CLASSES,
    BaseNodeExecutor,
    NodeDefinition,
    NodeExecutorRegistry,
    NodeResult,
    create_node_registry,
    primary_input,
    register_node_type,
)

__all__ = [
    "BUILTIN_NODE_CLASSES",
    "BaseNodeExecutor",
    "NodeDefinition",
    "NodeExecutorRegistry",
    "NodeResult",
    "create_node_registry",
    "primary_input",
    "register_node_type",
]
