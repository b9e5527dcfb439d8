"""Abstract syntax tree for parsed formulas.

One frozen dataclass per node kind:

- ``ConstantNode(type, value)``: a value read by a value type (leaf)
- ``LiteralNode(literal)``: a registered literal such as ``pi`` or ``mem`` (leaf)
- ``ArrayNode(items)``: ``[a, b, ...]``
- ``GroupingNode(child)``: ``( child )``
- ``BinaryNode(operator, left, right)``
- ``PrefixNode(operator, operand)`` and ``PostfixNode(operator, operand)``
- ``FunctionNode(function, args)``: ``name(a, b, ...)``

``token`` keeps the source spelling and ``index`` the position in the
formula.  Both are excluded from equality, so two trees compare equal when
they have the same structure, entries and values.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, ClassVar, Union

if TYPE_CHECKING:
    from calcengine.grammar import Function, Literal, Operator
    from calcengine.valuetypes import ValueType


@dataclass(frozen=True)
class ConstantNode:
    kind: ClassVar[str] = "constant"

    type: ValueType
    value: Any
    token: str | None = field(default=None, compare=False)
    index: int = field(default=0, compare=False)


@dataclass(frozen=True)
class LiteralNode:
    kind: ClassVar[str] = "literal"

    literal: Literal
    token: str | None = field(default=None, compare=False)
    index: int = field(default=0, compare=False)


@dataclass(frozen=True)
class ArrayNode:
    kind: ClassVar[str] = "array"

    items: tuple[Node, ...] = ()
    token: str | None = field(default=None, compare=False)
    index: int = field(default=0, compare=False)


@dataclass(frozen=True)
class GroupingNode:
    kind: ClassVar[str] = "grouping"

    child: Node
    token: str | None = field(default=None, compare=False)
    index: int = field(default=0, compare=False)


@dataclass(frozen=True)
class BinaryNode:
    kind: ClassVar[str] = "binary"

    operator: Operator
    left: Node
    right: Node
    token: str | None = field(default=None, compare=False)
    index: int = field(default=0, compare=False)


@dataclass(frozen=True)
class PrefixNode:
    kind: ClassVar[str] = "prefix"

    operator: Operator
    operand: Node
    token: str | None = field(default=None, compare=False)
    index: int = field(default=0, compare=False)


@dataclass(frozen=True)
class PostfixNode:
    kind: ClassVar[str] = "postfix"

    operator: Operator
    operand: Node
    token: str | None = field(default=None, compare=False)
    index: int = field(default=0, compare=False)


@dataclass(frozen=True)
class FunctionNode:
    kind: ClassVar[str] = "function"

    function: Function
    args: tuple[Node, ...] = ()
    token: str | None = field(default=None, compare=False)
    index: int = field(default=0, compare=False)


Node = Union[
    ConstantNode,
    LiteralNode,
    ArrayNode,
    GroupingNode,
    BinaryNode,
    PrefixNode,
    PostfixNode,
    FunctionNode,
]

NODE_TYPES = (
    ConstantNode,
    LiteralNode,
    ArrayNode,
    GroupingNode,
    BinaryNode,
    PrefixNode,
    PostfixNode,
    FunctionNode,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_value(node: Node) -> bool:
    """True if *node* is fully reduced: a constant or an array of values."""
    if isinstance(node, ConstantNode):
        return True
    if isinstance(node, ArrayNode):
        return all(is_value(item) for item in node.items)
    return False


def value_of(node: Node) -> Any:
    """Python value of a fully reduced node (arrays become lists)."""
    if isinstance(node, ConstantNode):
        return node.value
    if isinstance(node, ArrayNode):
        return [value_of(item) for item in node.items]
    raise ValueError(f"{node.kind} node has no value")


def operands(node: Node) -> tuple[Node, ...]:
    """Sub-trees an operator or function node is applied to."""
    if isinstance(node, BinaryNode):
        return (node.left, node.right)
    if isinstance(node, (PrefixNode, PostfixNode)):
        return (node.operand,)
    if isinstance(node, FunctionNode):
        return node.args
    if isinstance(node, ArrayNode):
        return node.items
    if isinstance(node, GroupingNode):
        return (node.child,)
    return ()


def rebuild(node: Node, new_operands: list[Node] | tuple[Node, ...]) -> Node:
    """Copy *node* (same entry, token and index) over *new_operands*."""
    if isinstance(node, BinaryNode):
        left, right = new_operands
        return replace(node, left=left, right=right)
    if isinstance(node, (PrefixNode, PostfixNode)):
        (operand,) = new_operands
        return replace(node, operand=operand)
    if isinstance(node, FunctionNode):
        return replace(node, args=tuple(new_operands))
    if isinstance(node, ArrayNode):
        return replace(node, items=tuple(new_operands))
    if isinstance(node, GroupingNode):
        (child,) = new_operands
        return replace(node, child=child)
    return node


def token_of(node: Node) -> str:
    """Source spelling of an operator, function or literal node."""
    if node.token is not None:
        return node.token
    if isinstance(node, (BinaryNode, PrefixNode, PostfixNode)):
        return node.operator.token
    if isinstance(node, FunctionNode):
        return node.function.token
    if isinstance(node, LiteralNode):
        return node.literal.token
    return ""
