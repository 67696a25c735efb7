"""Workflow runtime settings: tunable parameters for workflow execution.

All values read from environment variables with sensible defaults.
Import from here instead of hardcoding.

Infrastructure config (API host, log directory, CORS) stays
in workflow/config.py.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _str(key: str, default: str) -> str:
    return os.getenv(key, default)


def _bool(key: str, default: bool) -> bool:
    return os.getenv(key, "true" if default else "false").lower() in ("true", "1", "yes")


# =====================================================================
# Execution Engine
# =====================================================================

# Hard ceiling on node invocations per run (termination guarantee)
ENGINE_MAX_STEPS = _int("ENGINE_MAX_STEPS", 1000)

# Wall-clock budget for a single executor call (seconds)
ENGINE_NODE_TIMEOUT = _float("ENGINE_NODE_TIMEOUT", 60.0)

# Node type used to locate the entry node when the caller names none
DEFAULT_TRIGGER_TYPE = _str("DEFAULT_TRIGGER_TYPE", "trigger")


# =====================================================================
# Expression / Script Sandbox
# =====================================================================

EXPRESSION_MAX_LENGTH = _int("EXPRESSION_MAX_LENGTH", 500)
SCRIPT_MAX_LENGTH = _int("SCRIPT_MAX_LENGTH", 10000)

# Interpreter steps allowed per evaluation
SANDBOX_MAX_OPERATIONS = _int("SANDBOX_MAX_OPERATIONS", 100000)

# Wall-clock deadline per evaluation (seconds)
SANDBOX_TIMEOUT = _float("SANDBOX_TIMEOUT", 5.0)

# Largest string/list a script may build by repetition
SANDBOX_MAX_SEQUENCE_LENGTH = _int("SANDBOX_MAX_SEQUENCE_LENGTH", 1_000_000)

# Largest range() a script may iterate
SANDBOX_MAX_RANGE = _int("SANDBOX_MAX_RANGE", 100000)

# Largest exponent accepted by the ** operator
SANDBOX_MAX_EXPONENT = _int("SANDBOX_MAX_EXPONENT", 1000)


# =====================================================================
# Built-in Nodes
# =====================================================================

HTTP_NODE_DEFAULT_TIMEOUT = _float("HTTP_NODE_DEFAULT_TIMEOUT", 10.0)


# =====================================================================
# Tool Registry
# =====================================================================

# Reject tools missing name/description/category/execute at registration
TOOL_REGISTRY_VALIDATE = _bool("TOOL_REGISTRY_VALIDATE", True)
