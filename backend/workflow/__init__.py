"""Workflow engine package.

Subpackages:
- engine: Graph model, execution, state tracking, and safe expression evaluation
- nodes: Node executor registry and built-in node types
- tools: Tool registry and the built-in agent/workflow/canvas/platform tools
"""
