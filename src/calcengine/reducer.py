"""Tree reduction: evaluate a tree as far as its values allow.

Reduction is a coroutine so that functions and operators may be
asynchronous (e.g. a currency conversion doing a network call).  It still
runs synchronously end to end when every step is synchronous, and
:meth:`Reducer.reduce_sync` drives it from plain code.

A tree reduces either to a value node (a constant, or an array of values)
or, when some literal cannot be resolved, to a smaller equivalent tree.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, Iterable

from calcengine.errors import (
    DIVISION_BY_ZERO,
    WRONG_ARGUMENT_COUNT,
    CalculationError,
    CalculatorError,
    InvalidNodeKindError,
)
from calcengine.grammar import Grammar
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
    is_value,
    rebuild,
    token_of,
    value_of,
)


class Reducer:
    """Reduces trees parsed with *grammar*.

    Reduce procedures of functions and operators receive the reducer as
    their ``context`` and use :meth:`reduce`, :meth:`reduce_all` and
    :meth:`make_node` from it.
    """

    def __init__(self, grammar: Grammar, formula: str = "") -> None:
        self.grammar = grammar
        self.formula = formula

    async def reduce(self, tree: Node) -> Node:
        """Reduce *tree*; raise a :class:`CalculatorError` on failure."""
        if isinstance(tree, ConstantNode):
            return tree

        if isinstance(tree, LiteralNode):
            return self._reduce_literal(tree)

        if isinstance(tree, ArrayNode):
            items = await self.reduce_all(tree.items)
            return ArrayNode(tuple(items), index=tree.index)

        if isinstance(tree, GroupingNode):
            child = await self.reduce(tree.child)
            if is_value(child):
                return child
            return GroupingNode(child, index=tree.index)

        if isinstance(tree, BinaryNode):
            return await self._call(tree.operator.reduce, tree, tree.left, tree.right)
        if isinstance(tree, PrefixNode):
            return await self._call(tree.operator.reduce, tree, tree.operand)
        if isinstance(tree, PostfixNode):
            return await self._call(tree.operator.reduce, tree, tree.operand)
        if isinstance(tree, FunctionNode):
            return await self._call(tree.function.reduce, tree, *tree.args)

        raise InvalidNodeKindError(tree)

    async def reduce_all(self, trees: Iterable[Node]) -> list[Node]:
        """Reduce sibling trees concurrently, keeping their order.

        The first failure is raised and the remaining siblings are cancelled.
        """
        tasks = [asyncio.ensure_future(self.reduce(tree)) for tree in trees]
        if not tasks:
            return []
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            # collect the siblings so none of their errors goes unretrieved
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def reduce_sync(self, tree: Node) -> Node:
        """Run :meth:`reduce` to completion outside of an event loop."""
        return asyncio.run(self.reduce(tree))

    def make_node(self, value: Any, type_name: str | None = None) -> Node:
        return self.grammar.make_node(value, type_name)

    # ------------------------------------------------------------------

    def _reduce_literal(self, tree: LiteralNode) -> Node:
        literal = tree.literal
        if not literal.resolvable:
            return tree
        value = literal.get(self)
        if literal.type is not None:
            return ConstantNode(literal.type, value, index=tree.index)
        return self.make_node(value)

    async def _call(self, reduce: Callable[..., Any], tree: Node, *trees: Node) -> Node:
        try:
            _check_arity(reduce, self, tree, trees)
            result = reduce(self, tree, *trees)
            if inspect.isawaitable(result):
                result = await result
        except CalculatorError as exc:
            # locate the error at the innermost failing node
            if not getattr(exc, "located", False):
                exc.located = True
                if not exc.formula:
                    exc.formula = self.formula
                    exc.index = tree.index
                exc.length = exc.length or len(token_of(tree))
            raise
        return self.make_node(result)


def _check_arity(reduce: Callable[..., Any], context: Reducer, tree: Node, trees: tuple[Node, ...]) -> None:
    """Raise a :class:`CalculationError` when *trees* do not fit *reduce*."""
    try:
        signature = inspect.signature(reduce)
    except ValueError:
        # no signature to check against (some builtins)
        return
    try:
        signature.bind(context, tree, *trees)
    except TypeError as exc:
        raise CalculationError(
            token_of(tree),
            f"{len(trees)} given",
            message_key=WRONG_ARGUMENT_COUNT,
        ) from exc


# ---------------------------------------------------------------------------
# Default reduction recipe
# ---------------------------------------------------------------------------


def from_calculate(
    calculate: Callable[..., Any], type_name: str | None = None
) -> Callable[..., Any]:
    """Wrap a plain ``calculate(*values)`` into a reduce procedure.

    All operands are reduced first.  When every operand is a value,
    ``calculate`` runs on the Python values (it may be a coroutine
    function) and its result is typed as *type_name*, or inferred.  When
    some operand stays unresolved, the same operator or function is rebuilt
    over the partially reduced operands instead.
    """

    async def reduce(context: Reducer, node: Node, *trees: Node) -> Node:
        reduced = await context.reduce_all(trees)
        if not all(is_value(item) for item in reduced):
            return rebuild(node, reduced)
        values = [value_of(item) for item in reduced]
        try:
            result = calculate(*values)
            if inspect.isawaitable(result):
                result = await result
        except ZeroDivisionError as exc:
            raise CalculationError(
                token_of(node), str(exc), message_key=DIVISION_BY_ZERO
            ) from exc
        except (ArithmeticError, TypeError, ValueError) as exc:
            raise CalculationError(token_of(node), str(exc)) from exc
        return context.make_node(result, type_name)

    reduce.calculate = calculate  # type: ignore[attr-defined]
    return reduce


def reduce_tree(grammar: Grammar, tree: Node, formula: str = "") -> Node:
    """Reduce *tree* synchronously with a fresh :class:`Reducer`."""
    return Reducer(grammar, formula).reduce_sync(tree)


__all__ = ["Reducer", "from_calculate", "reduce_tree"]
