"""Math formula functions: random, abs, sqrt, pow, min, max, ... and if."""

from __future__ import annotations

import math
import random
from typing import Any, Callable

from calcengine.operators import truthy
from calcengine.tree import Node, is_value, rebuild, value_of


def _fn_round(x: Any) -> int:
    """round(x) -- nearest integer, halves rounded up."""
    return math.floor(x + 0.5)


def _fn_cbrt(x: Any) -> float:
    """cbrt(x) -- real cube root, negative for negative x."""
    return math.copysign(abs(x) ** (1 / 3), x)


def _fn_min(*values: Any) -> Any:
    if not values:
        raise ValueError("min requires at least 1 argument")
    return min(values)


def _fn_max(*values: Any) -> Any:
    if not values:
        raise ValueError("max requires at least 1 argument")
    return max(values)


async def reduce_if(context: Any, node: Node, test: Node, when_true: Node, when_false: Node) -> Node:
    """if(test, trueValue, falseValue) -- only the chosen branch is reduced."""
    result = await context.reduce(test)
    if not is_value(result):
        return rebuild(node, [result, when_true, when_false])
    return await context.reduce(when_true if truthy(value_of(result)) else when_false)


# token -> (parameter description, calculate)
MATH_FUNCTIONS: dict[str, tuple[str, Callable[..., Any]]] = {
    "random": ("", random.random),
    "abs": ("x", abs),
    "cos": ("x", math.cos),
    "sin": ("x", math.sin),
    "tan": ("x", math.tan),
    "acos": ("x", math.acos),
    "asin": ("x", math.asin),
    "atan": ("x", math.atan),
    "ceil": ("x", math.ceil),
    "floor": ("x", math.floor),
    "round": ("x", _fn_round),
    "exp": ("x", math.exp),
    "log": ("x", math.log),
    "sqrt": ("x", math.sqrt),
    "pow": ("x, y", math.pow),
    "atan2": ("x, y", math.atan2),
    "min": ("x1, x2*", _fn_min),
    "max": ("x1, x2*", _fn_max),
    "cbrt": ("x", _fn_cbrt),
}

# Math results are typed as decimals, rounding functions as integers.
MATH_RESULT_TYPES: dict[str, str] = {
    "ceil": "integer",
    "floor": "integer",
    "round": "integer",
}

# token -> (parameter description, reduce)
CONTROL_FUNCTIONS: dict[str, tuple[str, Callable[..., Any]]] = {
    "if": ("test, trueValue, falseValue", reduce_if),
}
