import ast
import math
from typing import Callable, Dict, Mapping, Optional, Tuple


def _mod(a, b):
    return a % b


def _sign(a):
    return math.copysign(1.0, a) if a != 0 else 0.0


def _as_float(func):
    # results stay float so powers never fall back to unbounded integer math
    return lambda *args: float(func(*args))


FUNCTIONS: Dict[str, Callable] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "atan2": math.atan2,
    "sqrt": math.sqrt,
    "pow": math.pow,
    "abs": abs,
    "floor": _as_float(math.floor),
    "ceil": _as_float(math.ceil),
    "round": _as_float(round),
    "min": min,
    "max": max,
    "exp": math.exp,
    "log": math.log,
    "log10": math.log10,
    "sign": _sign,
    "mod": _mod,
}

FORMULA_VARIABLES = [
    ("x", "Absolute X position (pixels)"),
    ("y", "Absolute Y position (pixels)"),
    ("nx", "Normalized X position (0-1)"),
    ("ny", "Normalized Y position (0-1)"),
    ("scale", "Global scale parameter"),
    ("dist", "Distance from center (pixels)"),
    ("angle", "Angle from center (radians)"),
    ("warp", "Domain warping intensity"),
    ("twist", "Twist deformation amount"),
    ("turbulence", "Turbulence overlay"),
    ("noise(x, y)", "Simplex noise at position"),
    ("PI", "Mathematical constant (3.14159...)"),
    ("TAU", "2 * PI (6.28318...)"),
]

FORMULA_FUNCTIONS = sorted(FUNCTIONS)

CONTEXT_NAMES = frozenset(
    ["x", "y", "nx", "ny", "scale", "dist", "angle", "warp", "twist",
     "turbulence", "noise", "PI", "TAU"]
)

_ALLOWED_NODES = (
    ast.Expression,
    ast.BinOp,
    ast.UnaryOp,
    ast.Call,
    ast.Name,
    ast.Load,
    ast.Constant,
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.Pow,
    ast.Mod,
    ast.USub,
    ast.UAdd,
)


class FormulaError(ValueError):
    pass


def _check_tree(tree: ast.AST) -> None:
    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise FormulaError(f"Unsupported syntax: {type(node).__name__}")
        if isinstance(node, ast.Constant) and not isinstance(node.value, (int, float)):
            raise FormulaError(f"Unsupported constant: {node.value!r}")
        if isinstance(node, ast.Name) and node.id not in CONTEXT_NAMES and node.id not in FUNCTIONS:
            raise FormulaError(f"Undefined symbol {node.id}")
        if isinstance(node, ast.Call):
            if node.keywords:
                raise FormulaError("Keyword arguments are not supported")
            if not isinstance(node.func, ast.Name) or (
                node.func.id not in FUNCTIONS and node.func.id != "noise"
            ):
                raise FormulaError("Only named math functions can be called")


class _FloatLiterals(ast.NodeTransformer):
    """Turn integer literals into floats so every operation is float math."""

    def visit_Constant(self, node):
        if isinstance(node.value, int) and not isinstance(node.value, bool):
            try:
                value = float(node.value)
            except OverflowError:
                raise FormulaError("Number too large") from None
            return ast.copy_location(ast.Constant(value), node)
        return node


def compile_formula(expression: str):
    """Parse and compile an expression into a code object.

    `^` is power, as in math.js. Raises FormulaError for anything outside
    arithmetic on the context variables and the whitelisted functions.
    """
    if not expression or not expression.strip():
        raise FormulaError("Expression is empty")
    source = expression.strip().replace("^", "**")
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as exc:
        raise FormulaError(exc.msg) from exc
    except (RecursionError, MemoryError, ValueError) as exc:
        raise FormulaError(f"Expression cannot be parsed: {type(exc).__name__}") from exc
    _check_tree(tree)
    try:
        tree = _FloatLiterals().visit(tree)
        return compile(tree, "<formula>", "eval")
    except (RecursionError, MemoryError) as exc:
        raise FormulaError(f"Expression is too deeply nested: {type(exc).__name__}") from exc


def validate_formula(expression: str) -> Tuple[bool, Optional[str]]:
    try:
        compile_formula(expression)
    except FormulaError as exc:
        return False, str(exc)
    return True, None


class FormulaEvaluator:
    """Compiles and evaluates formula force expressions.

    Owns the cache of compiled expressions for one vector field. Failing
    expressions evaluate to 0 and the first failure message per expression
    is kept in `errors` for the host to report.
    """

    _ZERO = compile("0", "<formula>", "eval")

    def __init__(self):
        self._cache: Dict[str, object] = {}
        self.errors: Dict[str, str] = {}

    def compile(self, expression: str):
        compiled = self._cache.get(expression)
        if compiled is not None:
            return compiled
        try:
            compiled = compile_formula(expression)
        except FormulaError as exc:
            self.errors.setdefault(expression, f"compile: {exc}")
            compiled = self._ZERO
        self._cache[expression] = compiled
        return compiled

    def evaluate(self, expression: str, context: Mapping[str, object]) -> float:
        compiled = self.compile(expression)
        namespace = dict(FUNCTIONS)
        for name, value in context.items():
            if isinstance(value, int) and not isinstance(value, bool):
                value = float(value)
            namespace[name] = value
        try:
            result = eval(compiled, {"__builtins__": {}}, namespace)
            if isinstance(result, bool) or not isinstance(result, (int, float)):
                return 0.0
            result = float(result)
        except (ArithmeticError, ValueError, TypeError, RecursionError) as exc:
            self.errors.setdefault(expression, f"evaluate: {exc}")
            return 0.0
        if not math.isfinite(result):
            return 0.0
        return result

    def clear(self) -> None:
        self._cache.clear()
        self.errors.clear()

    def __len__(self):
        return len(self._cache)
