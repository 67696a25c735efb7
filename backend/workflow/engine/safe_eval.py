"""Safe Expression and Script Evaluator

Uses Python's ast module to parse and interpret user-authored conditions and
transformation functions in a restricted sandbox. Source is never handed to
eval/exec/compile: the tree is walked node by node, and only the constructs
listed below are understood. Everything else raises SafeEvalError.

Expression mode (decision conditions):
- Literals: "string", 42, 3.14, True, False, None, [..], (..), {..}
- Comparisons and boolean logic: x > 10 and status == "ok", "Hello" in value
- Arithmetic: + - * / // % ** (bounded)
- Field access: data["key"], items[0], items[1:3], result.status (dicts only)
- Conditional expressions, f-strings, comprehensions
- Calls to allow-listed builtins (len, str, int, ...) and allow-listed
  methods of str / list / dict / tuple / set (value.upper(), d.get("k")),
  plus camelCase aliases such as value.includes("x") and value.toUpperCase()

Script mode (function nodes) adds statements: assignment, augmented
assignment, if / for / while, break / continue / pass, return. A script is
either ``def process(input): ...`` or a bare body that reads ``input`` and
returns a value.

Every evaluation runs under an operation budget and a wall-clock deadline,
and sequences built by repetition, range(), ** and method calls (including
in-place growth such as list.extend) are size-capped.
"""

from __future__ import annotations

import ast
import copy
import logging
import operator
import time
from typing import Any, Callable, Dict, List, Optional

from .. import settings

logger = logging.getLogger(__name__)

# Maximum source lengths to prevent abuse
MAX_EXPRESSION_LENGTH = settings.EXPRESSION_MAX_LENGTH
MAX_SCRIPT_LENGTH = settings.SCRIPT_MAX_LENGTH

# Largest int (in bits) a script may produce
_MAX_INT_BITS = 100_000

_SAFE_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}

_SAFE_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_SAFE_UNARY_OPS = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_LITERAL_NAMES = {
    "true": True,
    "True": True,
    "false": False,
    "False": False,
    "none": None,
    "None": None,
}


def _bounded_range(*args: int) -> range:
    r = range(*args)
    if len(r) > settings.SANDBOX_MAX_RANGE:
        raise SandboxLimitExceeded(
            f"range() of {len(r)} items exceeds limit of {settings.SANDBOX_MAX_RANGE}"
        )
    return r


_SAFE_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
    "sum": sum,
    "round": round,
    "sorted": sorted,
    "list": list,
    "dict": dict,
    "tuple": tuple,
    "set": set,
    "range": _bounded_range,
    "enumerate": enumerate,
    "zip": zip,
    "any": any,
    "all": all,
}

# str.format / format_map are excluded: format fields can reach attributes.
_SAFE_METHODS: Dict[type, frozenset] = {
    str: frozenset({
        "upper", "lower", "strip", "lstrip", "rstrip", "split", "rsplit",
        "splitlines", "join", "replace", "startswith", "endswith", "find",
        "rfind", "index", "count", "title", "capitalize", "casefold",
        "swapcase", "isdigit", "isalpha", "isalnum", "isspace", "islower",
        "isupper", "zfill", "center", "ljust", "rjust", "partition",
        "rpartition",
    }),
    list: frozenset({
        "append", "extend", "insert", "pop", "remove", "index", "count",
        "sort", "reverse", "copy", "clear",
    }),
    dict: frozenset({
        "get", "keys", "values", "items", "update", "pop", "copy",
        "setdefault", "clear",
    }),
    tuple: frozenset({"index", "count"}),
    set: frozenset({
        "add", "discard", "remove", "union", "intersection", "difference",
        "issubset", "issuperset", "copy", "clear",
    }),
}

# camelCase names that node authors carry over from the canvas editor.
_METHOD_ALIASES: Dict[type, Dict[str, Callable[[Any], Callable[..., Any]]]] = {
    str: {
        "includes": lambda s: s.__contains__,
        "toUpperCase": lambda s: s.upper,
        "toLowerCase": lambda s: s.lower,
        "startsWith": lambda s: s.startswith,
        "endsWith": lambda s: s.endswith,
        "trim": lambda s: s.strip,
        "trimStart": lambda s: s.lstrip,
        "trimEnd": lambda s: s.rstrip,
        "indexOf": lambda s: s.find,
    },
    list: {
        "includes": lambda items: items.__contains__,
        "push": lambda items: items.append,
    },
}

# Methods that grow their owner in place; the owner is size-checked after the call.
_MUTATING_METHODS = frozenset({
    "append", "extend", "insert", "update", "add", "setdefault", "push",
})

# str methods whose first argument is the result width.
_PADDING_METHODS = frozenset({"center", "ljust", "rjust", "zfill"})

_ALLOWED_STATEMENTS = (
    ast.Expr,
    ast.Assign,
    ast.AnnAssign,
    ast.AugAssign,
    ast.Return,
    ast.If,
    ast.For,
    ast.While,
    ast.Break,
    ast.Continue,
    ast.Pass,
)


class SafeEvalError(Exception):
    """Raised when expression or script evaluation fails."""
    pass


class SandboxTimeout(SafeEvalError):
    """Raised when an evaluation runs past its wall-clock deadline."""
    pass


class SandboxLimitExceeded(SafeEvalError):
    """Raised when an evaluation exceeds an operation or size limit."""
    pass


class _Return(Exception):
    def __init__(self, value: Any):
        self.value = value


class _Break(Exception):
    pass


class _Continue(Exception):
    pass


def _methods_for(value: Any) -> frozenset:
    for kind, methods in _SAFE_METHODS.items():
        if isinstance(value, kind):
            return methods
    return frozenset()


def _alias_for(value: Any, name: str) -> Optional[Callable[[Any], Callable[..., Any]]]:
    for kind, aliases in _METHOD_ALIASES.items():
        if isinstance(value, kind):
            return aliases.get(name)
    return None


def _check_result_size(owner: Any, name: str, args: List[Any]) -> None:
    """Reject str method calls whose result would exceed the size limit."""
    limit = settings.SANDBOX_MAX_SEQUENCE_LENGTH
    if not isinstance(owner, str):
        return
    if name in _PADDING_METHODS and args and isinstance(args[0], int):
        if args[0] > limit:
            raise SandboxLimitExceeded(f"Width {args[0]} exceeds limit of {limit}")
    elif name == "replace" and len(args) >= 2 and all(isinstance(a, str) for a in args[:2]):
        old, new = args[0], args[1]
        occurrences = owner.count(old) if old else len(owner) + 1
        if len(owner) + occurrences * max(len(new) - len(old), 0) > limit:
            raise SandboxLimitExceeded(f"replace() result exceeds limit of {limit}")
    elif name == "join" and args and isinstance(args[0], (list, tuple, set, dict)):
        items = args[0]
        total = sum(len(item) for item in items if isinstance(item, str))
        if total + len(owner) * max(len(items) - 1, 0) > limit:
            raise SandboxLimitExceeded(f"join() result exceeds limit of {limit}")


def _check_size(value: Any) -> Any:
    if isinstance(value, (str, list, tuple, dict, set)):
        if len(value) > settings.SANDBOX_MAX_SEQUENCE_LENGTH:
            raise SandboxLimitExceeded(
                f"Result of {len(value)} items exceeds limit of "
                f"{settings.SANDBOX_MAX_SEQUENCE_LENGTH}"
            )
    elif isinstance(value, int) and not isinstance(value, bool):
        if value.bit_length() > _MAX_INT_BITS:
            raise SandboxLimitExceeded("Integer result too large")
    return value


class _Interpreter:
    """Tree-walking interpreter over an explicit variable scope."""

    def __init__(
        self,
        variables: Dict[str, Any],
        max_operations: int,
        timeout: Optional[float],
    ):
        self.variables = variables
        self._operations = 0
        self._max_operations = max_operations
        self._deadline = time.monotonic() + timeout if timeout else None

    def _tick(self) -> None:
        self._operations += 1
        if self._operations > self._max_operations:
            raise SandboxLimitExceeded(
                f"Exceeded operation budget of {self._max_operations}"
            )
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise SandboxTimeout("Evaluation timed out")

    # ── Statements ──

    def exec_block(self, statements: List[ast.stmt]) -> None:
        for statement in statements:
            self.exec_stmt(statement)

    def exec_stmt(self, node: ast.stmt) -> None:
        self._tick()

        if isinstance(node, ast.Expr):
            self.eval(node.value)
            return

        if isinstance(node, ast.Assign):
            value = self.eval(node.value)
            for target in node.targets:
                self._assign(target, value)
            return

        if isinstance(node, ast.AnnAssign):
            if node.value is not None:
                self._assign(node.target, self.eval(node.value))
            return

        if isinstance(node, ast.AugAssign):
            op_func = _SAFE_BIN_OPS.get(type(node.op))
            if op_func is None:
                raise SafeEvalError(f"Unsupported binary op: {type(node.op).__name__}")
            current = self.eval(_as_load(node.target))
            self._assign(node.target, self._binop(op_func, current, self.eval(node.value)))
            return

        if isinstance(node, ast.Return):
            raise _Return(self.eval(node.value) if node.value is not None else None)

        if isinstance(node, ast.If):
            self.exec_block(node.body if self.eval(node.test) else node.orelse)
            return

        if isinstance(node, ast.For):
            broke = False
            for item in self.eval(node.iter):
                self._tick()
                self._assign(node.target, item)
                try:
                    self.exec_block(node.body)
                except _Break:
                    broke = True
                    break
                except _Continue:
                    continue
            if not broke:
                self.exec_block(node.orelse)
            return

        if isinstance(node, ast.While):
            broke = False
            while self.eval(node.test):
                self._tick()
                try:
                    self.exec_block(node.body)
                except _Break:
                    broke = True
                    break
                except _Continue:
                    continue
            if not broke:
                self.exec_block(node.orelse)
            return

        if isinstance(node, ast.Break):
            raise _Break()

        if isinstance(node, ast.Continue):
            raise _Continue()

        if isinstance(node, ast.Pass):
            return

        raise SafeEvalError(f"Unsupported statement: {type(node).__name__}")

    def _assign(self, target: ast.expr, value: Any) -> None:
        if isinstance(target, ast.Name):
            if target.id.startswith("__"):
                raise SafeEvalError(f"Invalid variable name: '{target.id}'")
            self.variables[target.id] = value
            return

        if isinstance(target, (ast.Tuple, ast.List)):
            items = list(value)
            if len(items) != len(target.elts):
                raise SafeEvalError(
                    f"Cannot unpack {len(items)} values into {len(target.elts)} names"
                )
            for element, item in zip(target.elts, items):
                self._assign(element, item)
            return

        if isinstance(target, ast.Subscript):
            container = self.eval(target.value)
            if not isinstance(container, (dict, list)):
                raise SafeEvalError(
                    f"Item assignment not supported on {type(container).__name__}"
                )
            container[self.eval(target.slice)] = value
            return

        raise SafeEvalError(f"Unsupported assignment target: {type(target).__name__}")

    # ── Expressions ──

    def eval(self, node: ast.AST) -> Any:
        self._tick()

        # Literal values: 42, "hello", True, None
        if isinstance(node, ast.Constant):
            return node.value

        # Variable names: value, input, status
        if isinstance(node, ast.Name):
            name = node.id
            if name in self.variables:
                return self.variables[name]
            if name in _LITERAL_NAMES:
                return _LITERAL_NAMES[name]
            raise SafeEvalError(f"Unknown variable: '{name}'")

        # Comparisons: x > 10, a == b, x in [1,2,3]
        if isinstance(node, ast.Compare):
            left = self.eval(node.left)
            for op, comparator in zip(node.ops, node.comparators):
                op_func = _SAFE_COMPARE_OPS.get(type(op))
                if op_func is None:
                    raise SafeEvalError(f"Unsupported comparison: {type(op).__name__}")
                right = self.eval(comparator)
                if not op_func(left, right):
                    return False
                left = right
            return True

        # Boolean operators keep Python's short-circuit value semantics
        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                result: Any = True
                for value_node in node.values:
                    result = self.eval(value_node)
                    if not result:
                        return result
                return result
            if isinstance(node.op, ast.Or):
                result = False
                for value_node in node.values:
                    result = self.eval(value_node)
                    if result:
                        return result
                return result
            raise SafeEvalError(f"Unsupported boolean op: {type(node.op).__name__}")

        # Unary operators: not x, -n
        if isinstance(node, ast.UnaryOp):
            op_func = _SAFE_UNARY_OPS.get(type(node.op))
            if op_func is None:
                raise SafeEvalError(f"Unsupported unary op: {type(node.op).__name__}")
            return op_func(self.eval(node.operand))

        # Binary operators: x + 1, count * 2
        if isinstance(node, ast.BinOp):
            op_func = _SAFE_BIN_OPS.get(type(node.op))
            if op_func is None:
                raise SafeEvalError(f"Unsupported binary op: {type(node.op).__name__}")
            return self._binop(op_func, self.eval(node.left), self.eval(node.right))

        # Subscript access: data["key"], items[0], items[1:3]
        if isinstance(node, ast.Subscript):
            value = self.eval(node.value)
            key = self.eval(node.slice)
            try:
                return value[key]
            except (KeyError, IndexError, TypeError) as e:
                raise SafeEvalError(f"Subscript access failed: {e}") from e

        if isinstance(node, ast.Slice):
            return slice(
                self.eval(node.lower) if node.lower is not None else None,
                self.eval(node.upper) if node.upper is not None else None,
                self.eval(node.step) if node.step is not None else None,
            )

        # Attribute access: result.status (only on dicts)
        if isinstance(node, ast.Attribute):
            if node.attr.startswith("_"):
                raise SafeEvalError(f"Access to '{node.attr}' is not allowed")
            value = self.eval(node.value)
            if isinstance(value, dict):
                if node.attr in value:
                    return value[node.attr]
                raise SafeEvalError(f"Key '{node.attr}' not found in dict")
            raise SafeEvalError(
                "Attribute access only supported on dict-like objects"
            )

        if isinstance(node, ast.Call):
            return self._call(node)

        # List literals: [1, 2, 3]
        if isinstance(node, ast.List):
            return [self.eval(elt) for elt in node.elts]

        # Tuple literals: (1, 2)
        if isinstance(node, ast.Tuple):
            return tuple(self.eval(elt) for elt in node.elts)

        if isinstance(node, ast.Set):
            return {self.eval(elt) for elt in node.elts}

        # Dict literals: {"a": 1}
        if isinstance(node, ast.Dict):
            result_dict: Dict[Any, Any] = {}
            for k, v in zip(node.keys, node.values):
                if k is None:
                    raise SafeEvalError("Dict unpacking is not allowed")
                result_dict[self.eval(k)] = self.eval(v)
            return result_dict

        # IfExp: x if condition else y
        if isinstance(node, ast.IfExp):
            if self.eval(node.test):
                return self.eval(node.body)
            return self.eval(node.orelse)

        # f-strings: f"Hello {name}"
        if isinstance(node, ast.JoinedStr):
            return _check_size("".join(str(self.eval(part)) for part in node.values))

        if isinstance(node, ast.FormattedValue):
            value = self.eval(node.value)
            if node.conversion == ord("r"):
                value = repr(value)
            elif node.conversion == ord("a"):
                value = ascii(value)
            elif node.conversion == ord("s"):
                value = str(value)
            spec = self.eval(node.format_spec) if node.format_spec is not None else ""
            return _check_size(format(value, spec))

        if isinstance(node, ast.ListComp):
            return _check_size(self._comprehension(node.generators, lambda: self.eval(node.elt)))

        if isinstance(node, ast.GeneratorExp):
            return _check_size(self._comprehension(node.generators, lambda: self.eval(node.elt)))

        if isinstance(node, ast.SetComp):
            return _check_size(set(self._comprehension(node.generators, lambda: self.eval(node.elt))))

        if isinstance(node, ast.DictComp):
            pairs = self._comprehension(
                node.generators, lambda: (self.eval(node.key), self.eval(node.value))
            )
            return _check_size(dict(pairs))

        raise SafeEvalError(f"Unsupported expression type: {type(node).__name__}")

    def _binop(self, op_func: Callable[[Any, Any], Any], left: Any, right: Any) -> Any:
        if op_func is operator.mul:
            for seq, count in ((left, right), (right, left)):
                if isinstance(seq, (str, list, tuple)) and isinstance(count, int):
                    if len(seq) * count > settings.SANDBOX_MAX_SEQUENCE_LENGTH:
                        raise SandboxLimitExceeded("Sequence repetition too large")
        if op_func is operator.pow and isinstance(right, (int, float)):
            if abs(right) > settings.SANDBOX_MAX_EXPONENT:
                raise SandboxLimitExceeded(
                    f"Exponent {right} exceeds limit of {settings.SANDBOX_MAX_EXPONENT}"
                )
        return _check_size(op_func(left, right))

    def _call(self, node: ast.Call) -> Any:
        for arg in node.args:
            if isinstance(arg, ast.Starred):
                raise SafeEvalError("Star arguments are not allowed")
        for keyword in node.keywords:
            if keyword.arg is None:
                raise SafeEvalError("Keyword unpacking is not allowed")

        func = node.func

        if isinstance(func, ast.Name):
            if func.id in self.variables or func.id not in _SAFE_FUNCTIONS:
                raise SafeEvalError(f"Function '{func.id}' is not allowed")
            target = _SAFE_FUNCTIONS[func.id]
        elif isinstance(func, ast.Attribute):
            if func.attr.startswith("_"):
                raise SafeEvalError(f"Access to '{func.attr}' is not allowed")
            owner = self.eval(func.value)
            alias = _alias_for(owner, func.attr)
            if alias is not None:
                target = alias(owner)
            elif func.attr in _methods_for(owner):
                target = getattr(owner, func.attr)
            else:
                raise SafeEvalError(
                    f"Method '{func.attr}' is not allowed on {type(owner).__name__}"
                )
        else:
            raise SafeEvalError("Only named functions and methods can be called")

        args = [self.eval(arg) for arg in node.args]
        kwargs = {kw.arg: self.eval(kw.value) for kw in node.keywords}
        if isinstance(func, ast.Attribute):
            _check_result_size(owner, func.attr, args)
        result = _check_size(target(*args, **kwargs))
        if isinstance(func, ast.Attribute) and func.attr in _MUTATING_METHODS:
            _check_size(owner)
        return result

    def _comprehension(
        self,
        generators: List[ast.comprehension],
        emit: Callable[[], Any],
    ) -> List[Any]:
        outer = self.variables
        self.variables = dict(outer)
        results: List[Any] = []
        try:
            self._run_generators(generators, 0, emit, results)
        finally:
            self.variables = outer
        return results

    def _run_generators(
        self,
        generators: List[ast.comprehension],
        index: int,
        emit: Callable[[], Any],
        results: List[Any],
    ) -> None:
        if index == len(generators):
            results.append(emit())
            if len(results) > settings.SANDBOX_MAX_SEQUENCE_LENGTH:
                raise SandboxLimitExceeded("Comprehension result too large")
            return
        generator = generators[index]
        if generator.is_async:
            raise SafeEvalError("Async comprehensions are not allowed")
        for item in self.eval(generator.iter):
            self._tick()
            self._assign(generator.target, item)
            if all(self.eval(condition) for condition in generator.ifs):
                self._run_generators(generators, index + 1, emit, results)


def _as_load(target: ast.expr) -> ast.expr:
    if isinstance(target, ast.Name):
        return ast.Name(id=target.id, ctx=ast.Load())
    if isinstance(target, ast.Subscript):
        return ast.Subscript(value=target.value, slice=target.slice, ctx=ast.Load())
    raise SafeEvalError(f"Unsupported assignment target: {type(target).__name__}")


def safe_eval(
    expression: str,
    context: Dict[str, Any],
    *,
    timeout: Optional[float] = None,
    max_operations: Optional[int] = None,
) -> Any:
    """Safely evaluate an expression against a context dictionary.

    Args:
        expression: The expression string to evaluate
        context: Dictionary of variable names to values
        timeout: Wall-clock deadline in seconds (default from settings)
        max_operations: Interpreter step budget (default from settings)

    Returns:
        The result of evaluating the expression

    Raises:
        SafeEvalError: If expression is invalid, uses unsupported constructs,
            fails at runtime, or exceeds its resource limits
    """
    if not expression or not expression.strip():
        raise SafeEvalError("Expression cannot be empty")

    expression = expression.strip()

    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise SafeEvalError(
            f"Expression too long ({len(expression)} chars, max {MAX_EXPRESSION_LENGTH})"
        )

    try:
        tree = ast.parse(expression, mode="eval")
    except SyntaxError as e:
        raise SafeEvalError(f"Invalid expression syntax: {e}") from e

    interpreter = _Interpreter(
        dict(context),
        max_operations or settings.SANDBOX_MAX_OPERATIONS,
        timeout if timeout is not None else settings.SANDBOX_TIMEOUT,
    )
    try:
        return interpreter.eval(tree.body)
    except SafeEvalError:
        raise
    except Exception as e:
        raise SafeEvalError(f"Evaluation error: {e}") from e


def run_function(
    code: str,
    input_value: Any,
    *,
    timeout: Optional[float] = None,
    max_operations: Optional[int] = None,
) -> Any:
    """Run a user-authored ``process(input) -> output`` function in the sandbox.

    The input is deep-copied so that a script cannot mutate the caller's
    value. A script without a ``return`` produces None.

    Raises:
        SafeEvalError: On invalid code, runtime failure or exceeded limits
    """
    if not code or not code.strip():
        raise SafeEvalError("Function code cannot be empty")

    if len(code) > MAX_SCRIPT_LENGTH:
        raise SafeEvalError(
            f"Function code too long ({len(code)} chars, max {MAX_SCRIPT_LENGTH})"
        )

    try:
        tree = ast.parse(code, mode="exec")
    except SyntaxError as e:
        raise SafeEvalError(f"Invalid function syntax: {e}") from e

    body, arg_name = _resolve_entrypoint(tree)

    interpreter = _Interpreter(
        {arg_name: copy.deepcopy(input_value)},
        max_operations or settings.SANDBOX_MAX_OPERATIONS,
        timeout if timeout is not None else settings.SANDBOX_TIMEOUT,
    )
    try:
        interpreter.exec_block(body)
    except _Return as r:
        return r.value
    except (_Break, _Continue):
        raise SafeEvalError("'break' or 'continue' outside loop")
    except SafeEvalError:
        raise
    except RecursionError as e:
        raise SandboxLimitExceeded("Function nesting too deep") from e
    except Exception as e:
        raise SafeEvalError(f"{type(e).__name__}: {e}") from e
    return None


def _resolve_entrypoint(tree: ast.Module) -> tuple[List[ast.stmt], str]:
    """Return the statements to run and the name bound to the input value."""
    definitions = [n for n in tree.body if isinstance(n, (ast.FunctionDef, ast.AsyncFunctionDef))]
    if not definitions:
        return tree.body, "input"

    if len(definitions) > 1 or not isinstance(definitions[0], ast.FunctionDef):
        raise SafeEvalError("Only a single 'process' function definition is allowed")

    fn = definitions[0]
    if fn.name != "process":
        raise SafeEvalError(f"Function must be named 'process', got '{fn.name}'")
    if fn.decorator_list:
        raise SafeEvalError("Decorators are not allowed")

    args = fn.args
    if (
        len(args.args) != 1
        or args.posonlyargs
        or args.kwonlyargs
        or args.vararg
        or args.kwarg
        or args.defaults
    ):
        raise SafeEvalError("'process' must take exactly one argument")

    others = [n for n in tree.body if n is not fn and not _is_docstring(n)]
    if others:
        raise SafeEvalError("Code outside the 'process' function is not allowed")

    return fn.body, args.args[0].arg


def _is_docstring(node: ast.stmt) -> bool:
    return (
        isinstance(node, ast.Expr)
        and isinstance(node.value, ast.Constant)
        and isinstance(node.value.value, str)
    )


def _static_errors(tree: ast.AST) -> List[str]:
    """Walk a parsed tree and report constructs the interpreter refuses."""
    errors: List[str] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Lambda):
            errors.append("Lambda expressions are not allowed")
        elif isinstance(node, (ast.Await, ast.Yield, ast.YieldFrom)):
            errors.append(f"{type(node).__name__} expressions are not allowed")
        elif isinstance(node, ast.Starred):
            errors.append("Star expressions are not allowed")
        elif isinstance(node, ast.NamedExpr):
            errors.append("Assignment expressions are not allowed")
        elif isinstance(node, ast.Attribute) and node.attr.startswith("_"):
            errors.append(f"Access to '{node.attr}' is not allowed")
        elif isinstance(node, ast.Call):
            if isinstance(node.func, ast.Name) and node.func.id not in _SAFE_FUNCTIONS:
                errors.append(f"Function '{node.func.id}' is not allowed")
            elif not isinstance(node.func, (ast.Name, ast.Attribute)):
                errors.append("Only named functions and methods can be called")
    return errors


def validate_condition_expression(expression: str) -> list[str]:
    """Validate a condition expression without evaluating it.

    Args:
        expression: The expression string to validate

    Returns:
        List of validation error strings. Empty if valid.
    """
    errors = []

    if not expression or not expression.strip():
        errors.append("Condition expression cannot be empty")
        return errors

    expression = expression.strip()

    if len(expression) > MAX_EXPRESSION_LENGTH:
        errors.append(
            f"Expression too long ({len(expression)} chars, max {MAX_EXPRESSION_LENGTH})"
        )
        return errors

    try:
        tree = ast.parse(expression, mode="eval")
    except SyntaxError as e:
        errors.append(f"Invalid syntax: {e}")
        return errors

    errors.extend(_static_errors(tree))
    return errors


def validate_function_code(code: str) -> list[str]:
    """Validate function node code without running it.

    Returns:
        List of validation error strings. Empty if valid.
    """
    if not code or not code.strip():
        return ["Function code cannot be empty"]

    if len(code) > MAX_SCRIPT_LENGTH:
        return [f"Function code too long ({len(code)} chars, max {MAX_SCRIPT_LENGTH})"]

    try:
        tree = ast.parse(code, mode="exec")
    except SyntaxError as e:
        return [f"Invalid syntax: {e}"]

    try:
        body, _ = _resolve_entrypoint(tree)
    except SafeEvalError as e:
        return [str(e)]

    errors: List[str] = []
    for statement in body:
        for node in ast.walk(statement):
            if isinstance(node, ast.stmt) and not isinstance(node, _ALLOWED_STATEMENTS):
                errors.append(f"{type(node).__name__} statements are not allowed")
    errors.extend(_static_errors(ast.Module(body=body, type_ignores=[])))
    return errors
