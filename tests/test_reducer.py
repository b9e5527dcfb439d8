"""Tests for tree reduction: values, partial reduction, async procedures."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from calcengine.defaults import default_grammar
from calcengine.errors import (
    DIVISION_BY_ZERO,
    WRONG_ARGUMENT_COUNT,
    CalculationError,
    InvalidNodeKindError,
    NotAssignableError,
)
from calcengine.formatter import format_tree
from calcengine.grammar import Grammar
from calcengine.parser import parse_formula
from calcengine.reducer import Reducer, from_calculate, reduce_tree
from calcengine.tree import (
    ArrayNode,
    BinaryNode,
    ConstantNode,
    FunctionNode,
    GroupingNode,
    Node,
    is_value,
    value_of,
)


# ────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────


@pytest.fixture
def grammar() -> Grammar:
    return default_grammar()


def _reduce(grammar: Grammar, formula: str) -> Node:
    tree = parse_formula(grammar, formula)
    return reduce_tree(grammar, tree, formula)


def _value(grammar: Grammar, formula: str) -> Any:
    return value_of(_reduce(grammar, formula))


# ────────────────────────────────────────────────────────────────
# Arithmetic
# ────────────────────────────────────────────────────────────────


class TestArithmetic:
    def test_precedence(self, grammar: Grammar) -> None:
        assert _value(grammar, "1 + 2 * 3") == 7

    def test_left_associativity(self, grammar: Grammar) -> None:
        assert _value(grammar, "8 - 3 - 2") == 3

    def test_right_associativity(self, grammar: Grammar) -> None:
        assert _value(grammar, "2 ** 2 ** 3") == 256

    def test_grouping(self, grammar: Grammar) -> None:
        assert _value(grammar, "(1 + 2) * 3") == 9

    def test_square_and_cube(self, grammar: Grammar) -> None:
        assert _value(grammar, "4²") == 16
        assert _value(grammar, "3³") == 27
        assert _value(grammar, "2³") == 8

    def test_factorial(self, grammar: Grammar) -> None:
        assert _value(grammar, "5!") == 120
        assert _value(grammar, "0!") == 1

    def test_factorial_rounds_operand(self, grammar: Grammar) -> None:
        assert _value(grammar, "2.5!") == 6

    def test_factorial_of_negative_fails(self, grammar: Grammar) -> None:
        with pytest.raises(CalculationError):
            _reduce(grammar, "(-1)!")

    def test_radix_constants(self, grammar: Grammar) -> None:
        assert _value(grammar, "0x10") == 16
        assert _value(grammar, "0o10") == 8
        assert _value(grammar, "0b10") == 2

    def test_numeric_addition_is_decimal(self, grammar: Grammar) -> None:
        result = _reduce(grammar, "1 + 2")
        assert isinstance(result, ConstantNode)
        assert result.type.name == "decimal"
        assert result.value == 3

    def test_string_concatenation(self, grammar: Grammar) -> None:
        result = _reduce(grammar, '"a" + "b"')
        assert result.type.name == "string"
        assert result.value == "ab"

    def test_mixed_concatenation(self, grammar: Grammar) -> None:
        assert _value(grammar, '"n=" + 2') == "n=2"

    def test_concatenation_uses_script_like_text(self, grammar: Grammar) -> None:
        assert _value(grammar, '"a" + 1.0') == "a1"
        assert _value(grammar, '"a" + [1, 2.5]') == "a1,2.5"
        assert _value(grammar, '[true, null] + "!"') == "true,!"
        assert _value(grammar, '"x" + 0.5') == "x0.5"

    def test_remainder_sign_follows_dividend(self, grammar: Grammar) -> None:
        assert _value(grammar, "-7 % 3") == -1
        assert _value(grammar, "7 % -3") == 1

    def test_prefix_operators(self, grammar: Grammar) -> None:
        assert _value(grammar, "-3") == -3
        assert _value(grammar, "√16") == 4
        assert _value(grammar, "!true") is False

    def test_division_by_zero(self, grammar: Grammar) -> None:
        with pytest.raises(CalculationError) as info:
            _reduce(grammar, "1 / 0")
        assert info.value.message_key == DIVISION_BY_ZERO
        assert info.value.index == 2
        assert info.value.length == 1
        assert info.value.formula == "1 / 0"

    def test_type_error_becomes_calculation_error(self, grammar: Grammar) -> None:
        with pytest.raises(CalculationError) as info:
            _reduce(grammar, '"a" - 1')
        assert info.value.token == "-"

    def test_any_whitespace_between_tokens(self, grammar: Grammar) -> None:
        assert _value(grammar, "1\t+ 2") == 3
        assert _value(grammar, "2\n*\r\n3") == 6


# ────────────────────────────────────────────────────────────────
# Logic and comparison
# ────────────────────────────────────────────────────────────────


class TestLogic:
    def test_comparisons(self, grammar: Grammar) -> None:
        assert _value(grammar, "1 < 2") is True
        assert _value(grammar, "2 <= 1") is False

    def test_loose_and_strict_equality(self, grammar: Grammar) -> None:
        assert _value(grammar, '1 == "1"') is True
        assert _value(grammar, '1 === "1"') is False
        assert _value(grammar, "1 === 1.0") is True
        assert _value(grammar, "null == null") is True
        assert _value(grammar, "null != 0") is True

    def test_membership(self, grammar: Grammar) -> None:
        assert _value(grammar, "2 ∈ [1, 2, 3]") is True
        assert _value(grammar, "5 ∈ [1, 2, 3]") is False

    def test_bitwise(self, grammar: Grammar) -> None:
        assert _value(grammar, "5 | 2") == 7
        assert _value(grammar, "6 & 3") == 2
        assert _value(grammar, "6 ^ 3") == 5
        assert _value(grammar, "~0") == -1

    def test_shifts_are_32_bit(self, grammar: Grammar) -> None:
        assert _value(grammar, "1 << 31") == -2147483648
        assert _value(grammar, "-16 >> 2") == -4
        assert _value(grammar, "-1 >>> 28") == 15

    def test_or_returns_right_value(self, grammar: Grammar) -> None:
        assert _value(grammar, "false || 5") == 5
        assert _value(grammar, "1 || 5") is True

    def test_short_circuit_skips_right_side(self, grammar: Grammar) -> None:
        calls: list[Any] = []

        def side_effect() -> int:
            calls.append(1)
            return 1

        grammar.add_function("sideEffect", "", calculate=side_effect)
        assert _value(grammar, "false && sideEffect()") is False
        assert _value(grammar, "true || sideEffect()") is True
        assert calls == []
        assert _value(grammar, "true && sideEffect()") == 1
        assert calls == [1]

    def test_if_reduces_only_chosen_branch(self, grammar: Grammar) -> None:
        assert _value(grammar, "if(1 > 2, 1 / 0, 5)") == 5
        assert _value(grammar, 'if(2 > 1, "yes", 1 / 0)') == "yes"

    def test_if_with_too_few_arguments(self, grammar: Grammar) -> None:
        with pytest.raises(CalculationError) as info:
            _reduce(grammar, "if(true)")
        assert info.value.message_key == WRONG_ARGUMENT_COUNT
        assert info.value.token == "if"
        assert info.value.index == 0
        assert info.value.length == 2

    def test_if_with_too_many_arguments(self, grammar: Grammar) -> None:
        with pytest.raises(CalculationError) as info:
            _reduce(grammar, "1 + if(true, 1, 2, 3)")
        assert info.value.message_key == WRONG_ARGUMENT_COUNT
        assert info.value.index == 4


# ────────────────────────────────────────────────────────────────
# Variables
# ────────────────────────────────────────────────────────────────


class TestVariables:
    def test_mem_assignment_persists(self, grammar: Grammar) -> None:
        assert _value(grammar, "mem = 5") == 5
        assert _value(grammar, "mem + 1") == 6

    def test_mem_starts_null(self, grammar: Grammar) -> None:
        result = _reduce(grammar, "mem")
        assert result.type.name == "null"
        assert result.value is None

    def test_assignment_is_right_associative(self, grammar: Grammar) -> None:
        grammar.add_literal("x", 0, True)
        assert _value(grammar, "x = mem = 3") == 3
        assert grammar.literals["x"].get() == 3
        assert grammar.literals["mem"].get() == 3

    def test_increments(self, grammar: Grammar) -> None:
        _reduce(grammar, "mem = 5")
        assert _value(grammar, "mem++") == 5
        assert _value(grammar, "mem") == 6
        assert _value(grammar, "++mem") == 7
        assert _value(grammar, "--mem") == 6
        assert _value(grammar, "mem--") == 6
        assert _value(grammar, "mem") == 5

    def test_constant_literal_not_assignable(self, grammar: Grammar) -> None:
        with pytest.raises(NotAssignableError) as info:
            _reduce(grammar, "pi = 3")
        assert info.value.token == "pi"
        assert info.value.index == 0
        assert info.value.length == 2

    def test_value_not_assignable(self, grammar: Grammar) -> None:
        with pytest.raises(NotAssignableError):
            _reduce(grammar, "3++")

    def test_callback_literal(self, grammar: Grammar) -> None:
        store = {"rate": 2}
        grammar.add_literal("rate", lambda: store["rate"], lambda v: store.update(rate=v))
        assert _value(grammar, "rate * 10") == 20
        _reduce(grammar, "rate = 4")
        assert store["rate"] == 4

    def test_literal_read_at_reduction_time(self, grammar: Grammar) -> None:
        store = {"rate": 2}
        grammar.add_literal("rate", lambda: store["rate"])
        tree = parse_formula(grammar, "rate + 1")
        store["rate"] = 10
        assert value_of(reduce_tree(grammar, tree)) == 11


# ────────────────────────────────────────────────────────────────
# Partial reduction
# ────────────────────────────────────────────────────────────────


class TestPartialReduction:
    def test_unresolvable_literal_stays_symbolic(self, grammar: Grammar) -> None:
        grammar.add_literal("x", None, resolvable=False)
        result = _reduce(grammar, "x + 2 * 3")
        assert isinstance(result, BinaryNode)
        assert format_tree(result) == "x + 6"

    def test_grouping_collapses_when_reduced(self, grammar: Grammar) -> None:
        grammar.add_literal("x", None, resolvable=False)
        result = _reduce(grammar, "(1 + 2) * x")
        assert isinstance(result.left, ConstantNode)
        assert format_tree(result) == "3 * x"

    def test_grouping_kept_when_symbolic(self, grammar: Grammar) -> None:
        grammar.add_literal("x", None, resolvable=False)
        result = _reduce(grammar, "(x + 1) * 2")
        assert isinstance(result.left, GroupingNode)
        assert format_tree(result) == "(x + 1) * 2"

    def test_function_rebuilt_over_reduced_arguments(self, grammar: Grammar) -> None:
        grammar.add_literal("x", None, resolvable=False)
        result = _reduce(grammar, "max(x, 1 + 1)")
        assert isinstance(result, FunctionNode)
        assert format_tree(result) == "max(x, 2)"

    def test_assignment_of_symbolic_value_is_kept(self, grammar: Grammar) -> None:
        grammar.add_literal("x", None, resolvable=False)
        result = _reduce(grammar, "mem = x + 1")
        assert format_tree(result) == "mem = x + 1"
        assert grammar.literals["mem"].get() is None

    def test_short_circuit_with_symbolic_left(self, grammar: Grammar) -> None:
        grammar.add_literal("x", None, resolvable=False)
        result = _reduce(grammar, "x && 1 + 1")
        assert format_tree(result) == "x && 1 + 1"


# ────────────────────────────────────────────────────────────────
# Arrays
# ────────────────────────────────────────────────────────────────


class TestArrays:
    def test_array_items_reduced(self, grammar: Grammar) -> None:
        assert _value(grammar, "[1 + 1, 2 * 2]") == [2, 4]

    def test_comma_builds_flat_array(self, grammar: Grammar) -> None:
        result = _reduce(grammar, "1, 2, 3")
        assert isinstance(result, ArrayNode)
        assert value_of(result) == [1, 2, 3]

    def test_comma_extends_left_array(self, grammar: Grammar) -> None:
        assert _value(grammar, "[1, 2], [3]") == [1, 2, 3]

    def test_array_is_a_value(self, grammar: Grammar) -> None:
        assert is_value(_reduce(grammar, "[1, [2, 3]]"))

    def test_variadic_function(self, grammar: Grammar) -> None:
        assert _value(grammar, "max(1, 5, 3)") == 5
        assert _value(grammar, "min(4, 2)") == 2


# ────────────────────────────────────────────────────────────────
# Async procedures
# ────────────────────────────────────────────────────────────────


class TestAsync:
    def test_async_calculate(self, grammar: Grammar) -> None:
        async def double(x: Any) -> Any:
            await asyncio.sleep(0)
            return x * 2

        grammar.add_function("double", "x", calculate=double)
        assert _value(grammar, "double(21) + 1") == 43

    def test_async_reduce_procedure(self, grammar: Grammar) -> None:
        async def answer(context: Reducer, node: Node) -> Node:
            await asyncio.sleep(0)
            return context.make_node(42)

        grammar.add_function("answer", "", answer)
        assert _value(grammar, "answer()") == 42

    def test_siblings_run_concurrently(self, grammar: Grammar) -> None:
        order: list[str] = []

        async def slow(x: Any) -> Any:
            order.append(f"start {x}")
            await asyncio.sleep(0.01)
            order.append(f"end {x}")
            return x

        grammar.add_function("slow", "x", calculate=slow)
        assert _value(grammar, "slow(1) + slow(2)") == 3
        assert order[:2] == ["start 1", "start 2"]

    def test_async_error_propagates(self, grammar: Grammar) -> None:
        async def broken(x: Any) -> Any:
            await asyncio.sleep(0)
            raise ValueError("service unavailable")

        grammar.add_function("broken", "x", calculate=broken)
        with pytest.raises(CalculationError) as info:
            _reduce(grammar, "1 + broken(2)")
        assert info.value.token == "broken"
        assert "service unavailable" in str(info.value)

    def test_reduce_inside_running_loop(self, grammar: Grammar) -> None:
        tree = parse_formula(grammar, "2 * 21")

        async def run() -> Node:
            return await Reducer(grammar).reduce(tree)

        assert value_of(asyncio.run(run())) == 42

    def test_failure_settles_siblings_before_raising(self, grammar: Grammar) -> None:
        seen: list[str] = []

        async def slow(x: Any) -> Any:
            try:
                await asyncio.sleep(1)
            except asyncio.CancelledError:
                seen.append("cancelled")
                raise
            return x

        async def fail(x: Any) -> Any:
            raise ValueError("first")

        async def fail_later(x: Any) -> Any:
            await asyncio.sleep(0)
            raise ValueError("second")

        grammar.add_function("slow", "x", calculate=slow)
        grammar.add_function("fail", "x", calculate=fail)
        grammar.add_function("fail_later", "x", calculate=fail_later)
        tree = parse_formula(grammar, "[fail(1), fail_later(2), slow(3)]")

        async def run() -> tuple[CalculationError, list[str]]:
            with pytest.raises(CalculationError) as info:
                await Reducer(grammar).reduce(tree)
            return info.value, list(seen)

        error, settled = asyncio.run(run())
        assert error.token == "fail"
        assert settled == ["cancelled"]


# ────────────────────────────────────────────────────────────────
# Reduction recipe
# ────────────────────────────────────────────────────────────────


class TestFromCalculate:
    def test_result_typed(self, grammar: Grammar) -> None:
        grammar.add_function("half", "x", calculate=lambda x: x / 2, type_name="decimal")
        result = _reduce(grammar, "half(4)")
        assert result.type.name == "decimal"
        assert result.value == 2.0

    def test_calculate_attribute(self) -> None:
        reduce = from_calculate(abs)
        assert reduce.calculate is abs

    def test_invalid_node_kind(self, grammar: Grammar) -> None:
        with pytest.raises(InvalidNodeKindError):
            Reducer(grammar).reduce_sync("not a node")  # type: ignore[arg-type]
