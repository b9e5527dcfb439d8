"""Precedence-climbing recursive-descent parser.

Grammar, driven by the operator tables of a :class:`~calcengine.grammar.Grammar`::

    formula  := exp(0) END
    exp(p)   := primary { postfix-op | binary-op exp(q) }
                    (only operators with precedence >= p;
                     q = precedence + 1 for left, precedence for right)
    primary  := prefix-op exp(precedence)
              | "(" exp(0) ")"
              | "[" [ exp(0) ] "]"
              | function "(" [ exp(0) ] ")"
              | literal | value

Argument and element lists are parsed with the ``,`` binary operator and
flattened afterwards, so ``f(1, 2, 3)`` gets three arguments.
"""

from __future__ import annotations

from calcengine.errors import ExpectedValueError
from calcengine.grammar import Grammar
from calcengine.tokenizer import Tokenizer
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
)

LIST_SEPARATOR = ","


class Parser:
    """Parses formulas against a grammar.  One tokenizer per ``parse`` call."""

    def __init__(self, grammar: Grammar) -> None:
        self.grammar = grammar
        self._tokens: Tokenizer | None = None

    def parse(self, formula: str) -> Node:
        """Parse *formula* into a tree.

        Raises:
            CalculatorParseError: If the formula is not valid.
        """
        self._tokens = Tokenizer(formula.strip(), self.grammar.separators())
        try:
            tree = self._exp(0)
            self._tokens.expect("")
            return tree
        finally:
            self._tokens = None

    # ------------------------------------------------------------------

    @property
    def tokens(self) -> Tokenizer:
        assert self._tokens is not None, "parse() not in progress"
        return self._tokens

    def _exp(self, min_precedence: int) -> Node:
        grammar = self.grammar
        tree = self._primary()
        while True:
            index = self.tokens.index
            token = self.tokens.peek()
            key = token.lower()

            op = grammar.postfix_operators.get(key)
            if op is not None and op.precedence >= min_precedence:
                self.tokens.consume(token)
                tree = PostfixNode(op, tree, token=token, index=index)
                continue

            op = grammar.binary_operators.get(key)
            if op is not None and op.precedence >= min_precedence:
                self.tokens.consume(token)
                q = op.precedence + 1 if op.associativity == "left" else op.precedence
                right = self._exp(q)
                tree = BinaryNode(op, tree, right, token=token, index=index)
                continue

            return tree

    def _primary(self) -> Node:
        grammar = self.grammar
        index = self.tokens.index
        token = self.tokens.peek()
        key = token.lower()

        op = grammar.prefix_operators.get(key)
        if op is not None:
            self.tokens.consume(token)
            operand = self._exp(op.precedence)
            return PrefixNode(op, operand, token=token, index=index)

        if token == "(":
            self.tokens.consume(token)
            child = self._exp(0)
            self.tokens.expect(")")
            return GroupingNode(child, index=index)

        if token == "[":
            self.tokens.consume(token)
            items = self._list("]")
            return ArrayNode(items, index=index)

        function = grammar.functions.get(key)
        if function is not None:
            self.tokens.consume(token)
            self.tokens.expect("(")
            args = self._list(")")
            return FunctionNode(function, args, token=token, index=index)

        node = self._literal(token, index)
        self.tokens.consume(token)
        return node

    def _list(self, closing: str) -> tuple[Node, ...]:
        """Parse ``a, b, ...`` up to *closing*; the opener is already consumed."""
        if self.tokens.peek() == closing:
            self.tokens.consume(closing)
            return ()
        tree = self._exp(0)
        self.tokens.expect(closing)
        return tuple(_flatten_list(tree))

    def _literal(self, token: str, index: int) -> Node:
        grammar = self.grammar
        key = token.lower()
        if key in grammar.functions or key in self.tokens.separators:
            raise ExpectedValueError(self.tokens.formula, index, token)

        literal = grammar.literals.get(key)
        if literal is not None:
            return LiteralNode(literal, token=token, index=index)

        match = grammar.try_parse(token)
        if match is not None:
            value_type, value = match
            return ConstantNode(value_type, value, token=token, index=index)

        raise ExpectedValueError(self.tokens.formula, index, token)


def _flatten_list(tree: Node) -> list[Node]:
    items: list[Node] = []
    while (
        isinstance(tree, BinaryNode)
        and tree.operator.token.lower() == LIST_SEPARATOR
    ):
        items.append(tree.right)
        tree = tree.left
    items.append(tree)
    items.reverse()
    return items


def parse_formula(grammar: Grammar, formula: str) -> Node:
    """Parse *formula* with *grammar*.

    Args:
        grammar: The grammar providing types, literals, functions and operators.
        formula: The formula text, e.g. ``"1 + 2 * pi"``.

    Returns:
        The root node of the tree.

    Raises:
        CalculatorParseError: If the formula has invalid syntax.
    """
    return Parser(grammar).parse(formula)

