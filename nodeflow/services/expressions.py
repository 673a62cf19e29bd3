"""Safe expression evaluation for Computation nodes.

Expressions are parsed with ``ast`` in eval mode and walked node by node.
Only literals, arithmetic, comparisons, boolean logic, conditional
expressions, container literals, subscripts and a fixed set of functions are
accepted. Names, attribute access on arbitrary objects, comprehensions and
lambdas are rejected.
"""

import ast
import math
import operator
from typing import Any, Callable, Dict

from nodeflow.core.exceptions import ExpressionError

MAX_POWER_EXPONENT = 10_000
MAX_EXPRESSION_LENGTH = 10_000
MAX_INTEGER_BITS = 65_536
MAX_SEQUENCE_LENGTH = 100_000

_SEQUENCE_TYPES = (str, bytes, list, tuple)


def _is_int(value) -> bool:
    return isinstance(value, int)


def _check_bits(bits: int) -> None:
    if bits > MAX_INTEGER_BITS:
        raise ValueError("Integer result too large")


def _safe_mul(left, right):
    if isinstance(left, _SEQUENCE_TYPES) and _is_int(right):
        if len(left) * right > MAX_SEQUENCE_LENGTH:
            raise ValueError("Sequence result too large")
    elif isinstance(right, _SEQUENCE_TYPES) and _is_int(left):
        if len(right) * left > MAX_SEQUENCE_LENGTH:
            raise ValueError("Sequence result too large")
    elif _is_int(left) and _is_int(right):
        _check_bits(left.bit_length() + right.bit_length())
    return operator.mul(left, right)


def _safe_lshift(left, right):
    if _is_int(left) and _is_int(right) and right > 0:
        _check_bits(left.bit_length() + right)
    return operator.lshift(left, right)


def _safe_pow(left, right):
    if isinstance(right, (int, float)) and abs(right) > MAX_POWER_EXPONENT:
        raise ValueError(f"Exponent too large: {right}")
    if _is_int(left) and _is_int(right) and right > 0:
        _check_bits(left.bit_length() * right)
    return operator.pow(left, right)


class SafeExpressionEvaluator:
    """Evaluates a single numeric/string expression without ``eval``."""

    operators: Dict[type, Callable] = {
        ast.Add: operator.add,
        ast.Sub: operator.sub,
        ast.Mult: _safe_mul,
        ast.Div: operator.truediv,
        ast.FloorDiv: operator.floordiv,
        ast.Mod: operator.mod,
        ast.Pow: _safe_pow,
        ast.LShift: _safe_lshift,
        ast.RShift: operator.rshift,
        ast.BitOr: operator.or_,
        ast.BitXor: operator.xor,
        ast.BitAnd: operator.and_,
    }

    comparisons: Dict[type, Callable] = {
        ast.Eq: operator.eq,
        ast.NotEq: operator.ne,
        ast.Lt: operator.lt,
        ast.LtE: operator.le,
        ast.Gt: operator.gt,
        ast.GtE: operator.ge,
        ast.In: lambda x, y: x in y,
        ast.NotIn: lambda x, y: x not in y,
    }

    unary_ops: Dict[type, Callable] = {
        ast.UAdd: operator.pos,
        ast.USub: operator.neg,
        ast.Not: operator.not_,
        ast.Invert: operator.invert,
    }

    constants: Dict[str, Any] = {
        "True": True, "False": False, "None": None,
        "true": True, "false": False, "null": None,
        "pi": math.pi, "e": math.e,
    }

    functions: Dict[str, Callable] = {
        "abs": abs, "round": round, "min": min, "max": max, "sum": sum,
        "len": len, "str": str, "int": int, "float": float, "bool": bool,
        "sqrt": math.sqrt, "floor": math.floor, "ceil": math.ceil,
        "pow": lambda x, y: _safe_pow(x, y),
        "upper": lambda s: str(s).upper(),
        "lower": lambda s: str(s).lower(),
    }

    def evaluate(self, expression: str) -> Any:
        """Evaluate ``expression`` and return its value.

        Raises:
            ExpressionError: On empty, unparseable, unsupported or failing input
        """
        source = (expression or "").strip()
        if not source:
            raise ExpressionError("Expression is empty", expression)
        if len(source) > MAX_EXPRESSION_LENGTH:
            raise ExpressionError("Expression is too long", expression)

        try:
            tree = ast.parse(source, mode="eval")
        except SyntaxError as e:
            raise ExpressionError(f"Syntax error in expression: {e.msg}", expression)

        try:
            return self._eval_node(tree.body)
        except ExpressionError:
            raise
        except Exception as e:
            raise ExpressionError(f"{type(e).__name__}: {e}", expression)

    def _eval_node(self, node: ast.AST) -> Any:
        if isinstance(node, ast.Constant):
            return node.value

        if isinstance(node, ast.Name):
            if node.id in self.constants:
                return self.constants[node.id]
            raise NameError(f"Name '{node.id}' is not defined")

        if isinstance(node, ast.BinOp):
            op = self.operators.get(type(node.op))
            if op is None:
                raise ValueError(f"Unsupported operator: {type(node.op).__name__}")
            return op(self._eval_node(node.left), self._eval_node(node.right))

        if isinstance(node, ast.UnaryOp):
            op = self.unary_ops.get(type(node.op))
            if op is None:
                raise ValueError(f"Unsupported operator: {type(node.op).__name__}")
            return op(self._eval_node(node.operand))

        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                result = True
                for value in node.values:
                    result = self._eval_node(value)
                    if not result:
                        return result
                return result
            result = False
            for value in node.values:
                result = self._eval_node(value)
                if result:
                    return result
            return result

        if isinstance(node, ast.Compare):
            left = self._eval_node(node.left)
            for op, right_node in zip(node.ops, node.comparators):
                comparison = self.comparisons.get(type(op))
                if comparison is None:
                    raise ValueError(f"Unsupported comparison: {type(op).__name__}")
                right = self._eval_node(right_node)
                if not comparison(left, right):
                    return False
                left = right
            return True

        if isinstance(node, ast.IfExp):
            if self._eval_node(node.test):
                return self._eval_node(node.body)
            return self._eval_node(node.orelse)

        if isinstance(node, ast.List):
            return [self._eval_node(item) for item in node.elts]

        if isinstance(node, ast.Tuple):
            return tuple(self._eval_node(item) for item in node.elts)

        if isinstance(node, ast.Dict):
            return {
                self._eval_node(k): self._eval_node(v)
                for k, v in zip(node.keys, node.values)
            }

        if isinstance(node, ast.Subscript):
            return self._eval_node(node.value)[self._eval_node(node.slice)]

        if isinstance(node, ast.Slice):
            return slice(
                self._eval_node(node.lower) if node.lower else None,
                self._eval_node(node.upper) if node.upper else None,
                self._eval_node(node.step) if node.step else None,
            )

        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in self.functions:
                raise ValueError("Only built-in functions can be called")
            if node.keywords:
                raise ValueError("Keyword arguments are not supported")
            args = [self._eval_node(arg) for arg in node.args]
            return self.functions[node.func.id](*args)

        raise ValueError(f"Unsupported expression element: {type(node).__name__}")


_default_evaluator = SafeExpressionEvaluator()


def evaluate_expression(expression: str) -> Any:
    """Evaluate with the shared evaluator instance."""
    return _default_evaluator.evaluate(expression)
