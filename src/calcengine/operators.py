"""Default operators.

Precedence, from lowest to highest::

     0  ,                      array building (also argument lists)
     1  =                      assignment (right-associative)
     2  (reserved for compound assignments)
     3  (reserved for ? :)
     4  ||                     short-circuit or
     5  &&                     short-circuit and
     6  |                      bitwise or
     7  ^                      bitwise xor
     8  &                      bitwise and
     9  === !== == !=          strict and loose equality
    10  < > <= >= ∈            comparison, membership
    11  << >> >>>              32-bit shifts
    12  + -                    addition / concatenation, subtraction
    13  ** * / %               power (right-associative), product, quotient, remainder
    14  √ ! ~ + - ++ --        prefix
    15  ² ³ ++ -- !            postfix (! is factorial)

Bitwise operators work on 32-bit signed integers, ``>>>`` excepted whose
result is unsigned.
"""

from __future__ import annotations

import math
from typing import Any, Callable, NamedTuple

from calcengine.errors import NotAssignableError
from calcengine.logging.events import EventType, emit_info
from calcengine.reducer import from_calculate
from calcengine.tree import ArrayNode, LiteralNode, Node, is_value, rebuild, token_of, value_of
from calcengine.valuetypes import format_decimal


class OperatorSpec(NamedTuple):
    token: str
    precedence: int
    associativity: str
    reduce: Callable[..., Any] | None = None
    calculate: Callable[..., Any] | None = None
    type_name: str | None = None


# ---------------------------------------------------------------------------
# Value semantics
# ---------------------------------------------------------------------------


def truthy(value: Any) -> bool:
    """Truthiness of a formula value (NaN is false, arrays are true)."""
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (list, tuple)):
        return True
    return bool(value)


def to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            return float(text)
    return value


def to_int32(value: Any) -> int:
    number = to_number(value)
    if isinstance(number, float):
        if not math.isfinite(number):
            return 0
        number = math.trunc(number)
    number = int(number) & 0xFFFFFFFF
    return number - 0x100000000 if number >= 0x80000000 else number


def to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return format_decimal(value)
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else to_text(item) for item in value)
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def strict_equals(a: Any, b: Any) -> bool:
    if _is_number(a) and _is_number(b):
        return a == b
    return type(a) is type(b) and a == b


def loose_equals(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is None and b is None
    if type(a) is type(b) or (_is_number(a) and _is_number(b)):
        return a == b
    scalar = (bool, int, float, str)
    if isinstance(a, scalar) and isinstance(b, scalar):
        try:
            return to_number(a) == to_number(b)
        except ValueError:
            return False
    return False


def power(a: Any, b: Any) -> Any:
    if isinstance(a, int) and isinstance(b, int) and b >= 0:
        return a ** b
    return math.pow(a, b)


def remainder(a: Any, b: Any) -> Any:
    """Remainder with the sign of the dividend."""
    if b == 0:
        raise ZeroDivisionError("modulo by zero")
    if isinstance(a, int) and isinstance(b, int):
        r = abs(a) % abs(b)
        return -r if a < 0 else r
    return math.fmod(a, b)


def factorial(a: Any) -> int:
    n = math.floor(a + 0.5)
    if n < 0:
        raise ValueError("factorial of a negative number")
    result = 1
    while n != 0:
        result *= n
        n -= 1
    return result


def _add(a: Any, b: Any) -> Any:
    return a + b


def _shift_right_unsigned(a: Any, b: Any) -> int:
    return (to_int32(a) & 0xFFFFFFFF) >> (to_int32(b) & 31)


# ---------------------------------------------------------------------------
# Reduce procedures needing more than values
# ---------------------------------------------------------------------------


async def reduce_comma(context: Any, node: Node, left: Node, right: Node) -> Node:
    """``a, b`` builds an array; a left array is extended."""
    a, b = await context.reduce_all([left, right])
    if isinstance(a, ArrayNode):
        tail = b.items if isinstance(b, ArrayNode) else (b,)
        return ArrayNode(a.items + tail, index=a.index)
    return ArrayNode((a, b), index=node.index)


async def reduce_plus(context: Any, node: Node, left: Node, right: Node) -> Node:
    """Concatenation when a side is a string, numeric addition otherwise."""
    a, b = await context.reduce_all([left, right])
    if not (is_value(a) and is_value(b)):
        return rebuild(node, [a, b])
    x, y = value_of(a), value_of(b)
    if isinstance(x, str) or isinstance(y, str):
        return context.make_node(to_text(x) + to_text(y), "string")
    return await from_calculate(_add, "decimal")(context, node, a, b)


def _variable(context: Any, target: Node) -> Any:
    if isinstance(target, LiteralNode) and target.literal.settable:
        return target.literal
    raise NotAssignableError(
        token_of(target) or type(target).__name__,
        formula=context.formula,
        index=target.index,
    )


def _assigned(literal: Any, value: Any) -> None:
    emit_info(
        EventType.variable_assigned,
        f"{literal.token} = {value!r}",
        {"token": literal.token, "value": repr(value)},
    )


async def reduce_assign(context: Any, node: Node, target: Node, expression: Node) -> Node:
    """``variable = expression``, only applied when the expression has a value."""
    literal = _variable(context, target)
    result = await context.reduce(expression)
    if not is_value(result):
        return rebuild(node, [target, result])
    value = value_of(result)
    literal.set(context, value)
    _assigned(literal, value)
    return result


async def reduce_or(context: Any, node: Node, left: Node, right: Node) -> Node:
    a = await context.reduce(left)
    if not is_value(a):
        return rebuild(node, [a, right])
    if truthy(value_of(a)):
        return context.make_node(True)
    return await context.reduce(right)


async def reduce_and(context: Any, node: Node, left: Node, right: Node) -> Node:
    a = await context.reduce(left)
    if not is_value(a):
        return rebuild(node, [a, right])
    if not truthy(value_of(a)):
        return context.make_node(False)
    return await context.reduce(right)


def _step(delta: int, prefix: bool) -> Callable[..., Any]:
    def reduce(context: Any, node: Node, target: Node) -> Node:
        literal = _variable(context, target)
        old = to_number(literal.get(context))
        new = old + delta
        literal.set(context, new)
        _assigned(literal, new)
        return context.make_node(new if prefix else old, "decimal")

    return reduce


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------


def _table() -> list[OperatorSpec]:
    specs: list[OperatorSpec] = []
    precedence = 0

    def add(token: str, associativity: str, reduce: Any = None, calculate: Any = None, type_name: str | None = None) -> None:
        specs.append(OperatorSpec(token, precedence, associativity, reduce, calculate, type_name))

    add(",", "left", reduce_comma)
    precedence += 1
    add("=", "right", reduce_assign)
    precedence += 1  # compound assignments
    precedence += 1  # ? :
    precedence += 1
    add("||", "left", reduce_or)
    precedence += 1
    add("&&", "left", reduce_and)
    precedence += 1
    add("|", "left", calculate=lambda a, b: to_int32(a) | to_int32(b), type_name="integer")
    precedence += 1
    add("^", "left", calculate=lambda a, b: to_int32(a) ^ to_int32(b), type_name="integer")
    precedence += 1
    add("&", "left", calculate=lambda a, b: to_int32(a) & to_int32(b), type_name="integer")
    precedence += 1
    add("===", "left", calculate=strict_equals)
    add("!==", "left", calculate=lambda a, b: not strict_equals(a, b))
    add("==", "left", calculate=loose_equals)
    add("!=", "left", calculate=lambda a, b: not loose_equals(a, b))
    precedence += 1
    add("<", "left", calculate=lambda a, b: a < b)
    add(">", "left", calculate=lambda a, b: a > b)
    add("<=", "left", calculate=lambda a, b: a <= b)
    add(">=", "left", calculate=lambda a, b: a >= b)
    add("∈", "left", calculate=lambda a, b: a in b)
    precedence += 1
    add("<<", "left", calculate=lambda a, b: to_int32(to_int32(a) << (to_int32(b) & 31)), type_name="integer")
    add(">>", "left", calculate=lambda a, b: to_int32(a) >> (to_int32(b) & 31), type_name="integer")
    add(">>>", "left", calculate=_shift_right_unsigned, type_name="integer")
    precedence += 1
    add("+", "left", reduce_plus)
    add("-", "left", calculate=lambda a, b: a - b, type_name="decimal")
    precedence += 1
    add("**", "right", calculate=power, type_name="decimal")
    add("*", "left", calculate=lambda a, b: a * b, type_name="decimal")
    add("/", "left", calculate=lambda a, b: a / b, type_name="decimal")
    add("%", "left", calculate=remainder, type_name="decimal")
    precedence += 1
    add("√", "prefix", calculate=math.sqrt, type_name="decimal")
    add("!", "prefix", calculate=lambda a: not truthy(a))
    add("~", "prefix", calculate=lambda a: ~to_int32(a), type_name="integer")
    add("+", "prefix", calculate=to_number, type_name="decimal")
    add("-", "prefix", calculate=lambda a: -a, type_name="decimal")
    add("++", "prefix", _step(1, prefix=True))
    add("--", "prefix", _step(-1, prefix=True))
    precedence += 1
    add("²", "postfix", calculate=lambda a: power(a, 2), type_name="decimal")
    add("³", "postfix", calculate=lambda a: power(a, 3), type_name="decimal")
    add("++", "postfix", _step(1, prefix=False))
    add("--", "postfix", _step(-1, prefix=False))
    add("!", "postfix", calculate=factorial, type_name="integer")
    return specs


DEFAULT_OPERATORS: list[OperatorSpec] = _table()
