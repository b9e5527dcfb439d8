"""Render a tree back to formula text.

``parse(format_tree(parse(f)))`` is structurally equal to ``parse(f)``;
only spacing is normalized (one space around binary operators, none after
prefix or before postfix operators, ``", "`` between list items).
"""

from __future__ import annotations

from calcengine.errors import InvalidNodeKindError
from calcengine.parser import LIST_SEPARATOR
from calcengine.tree import (
    ArrayNode,
    BinaryNode,
    ConstantNode,
    FunctionNode,
    GroupingNode,
    LiteralNode,
    Node,
    PostfixNode,
    PrefixNode,
    token_of,
)


def format_tree(tree: Node) -> str:
    """Format *tree* as a formula string."""
    if isinstance(tree, ConstantNode):
        return tree.type.format(tree.value)
    if isinstance(tree, LiteralNode):
        return token_of(tree)
    if isinstance(tree, ArrayNode):
        return "[" + ", ".join(format_tree(item) for item in tree.items) + "]"
    if isinstance(tree, GroupingNode):
        return "(" + format_tree(tree.child) + ")"
    if isinstance(tree, BinaryNode):
        token = token_of(tree)
        if token == LIST_SEPARATOR:
            return f"{format_tree(tree.left)}{token} {format_tree(tree.right)}"
        return f"{format_tree(tree.left)} {token} {format_tree(tree.right)}"
    if isinstance(tree, PrefixNode):
        return _join(token_of(tree), format_tree(tree.operand))
    if isinstance(tree, PostfixNode):
        return _join(format_tree(tree.operand), token_of(tree))
    if isinstance(tree, FunctionNode):
        return token_of(tree) + "(" + ", ".join(format_tree(arg) for arg in tree.args) + ")"
    raise InvalidNodeKindError(tree)


def _word(ch: str) -> bool:
    return ch.isalpha() or ch.isdecimal() or ch == "_"


def _glues(ch: str) -> bool:
    return not (ch.isspace() or ch in "()[]\"")


def _join(first: str, second: str) -> str:
    """Concatenate, keeping a space where the two sides would merge into one token."""
    if not first or not second:
        return first + second
    a, b = first[-1], second[0]
    if _word(a) == _word(b) and _glues(a) and _glues(b):
        return f"{first} {second}"
    return first + second
