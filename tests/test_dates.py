"""Tests for date and time value types and formatDate."""

from __future__ import annotations

import datetime
from typing import Any

import pytest

from calcengine.defaults import default_grammar
from calcengine.errors import CalculationError
from calcengine.fn_date import (
    CalendarValue,
    calendar_type,
    date_value_types,
    format_calendar,
)
from calcengine.formatter import format_tree
from calcengine.grammar import Grammar
from calcengine.parser import parse_formula
from calcengine.reducer import reduce_tree
from calcengine.tree import ConstantNode, value_of
from calcengine.valuetypes import NO_MATCH


@pytest.fixture
def grammar() -> Grammar:
    return default_grammar(dates=True)


def _value(grammar: Grammar, formula: str) -> Any:
    return value_of(reduce_tree(grammar, parse_formula(grammar, formula)))


# ────────────────────────────────────────────────────────────────
# Value types
# ────────────────────────────────────────────────────────────────


class TestCalendarTypes:
    def test_date_parsed(self) -> None:
        t = calendar_type("date", '"YYYY/MM/DD"')
        assert t.parse('"2018/04/13"') == CalendarValue(2018, 4, 13)

    def test_strict_width(self) -> None:
        t = calendar_type("date", '"YYYY/MM/DD"')
        assert t.parse('"2018/4/13"') is NO_MATCH

    def test_invalid_date(self) -> None:
        t = calendar_type("date", '"YYYY/MM/DD"')
        assert t.parse('"2018/02/30"') is NO_MATCH

    def test_time(self) -> None:
        t = calendar_type("time", '"HH:mm"')
        value = t.parse('"09:05"')
        assert value == CalendarValue(hour=9, minute=5)
        assert t.format(value) == '"09:05"'

    def test_claims_by_fields(self) -> None:
        date_type = calendar_type("date", '"YYYY/MM/DD"')
        time_type = calendar_type("time", '"HH:mm"')
        value = CalendarValue(2020, 1, 2)
        assert date_type.claims(value)
        assert not time_type.claims(value)

    def test_unquoted_patterns_get_quotes(self) -> None:
        types = date_value_types(formats={"date": "DD/MM/YYYY"})
        assert types[0].parse('"13/04/2018"') == CalendarValue(2018, 4, 13)

    def test_to_datetime(self) -> None:
        value = CalendarValue(2018, 4, 13, 10, 30)
        assert value.to_datetime() == datetime.datetime(2018, 4, 13, 10, 30)


# ────────────────────────────────────────────────────────────────
# Grammar integration
# ────────────────────────────────────────────────────────────────


class TestDateGrammar:
    def test_types_before_string(self, grammar: Grammar) -> None:
        names = [t.name for t in grammar.types]
        assert names.index("datetime") < names.index("date") < names.index("time") < names.index("string")

    def test_dates_disabled_by_default(self) -> None:
        grammar = default_grammar()
        assert "formatDate" not in grammar.functions and "formatdate" not in grammar.functions
        assert _value(grammar, '"2018/04/13"') == "2018/04/13"

    def test_datetime_constant(self, grammar: Grammar) -> None:
        tree = parse_formula(grammar, '"2018/04/13 10:30"')
        assert isinstance(tree, ConstantNode)
        assert tree.type.name == "datetime"
        assert format_tree(tree) == '"2018/04/13 10:30"'

    def test_non_date_string_stays_string(self, grammar: Grammar) -> None:
        assert _value(grammar, '"2018/02/30"') == "2018/02/30"

    def test_format_date(self, grammar: Grammar) -> None:
        assert _value(grammar, 'formatDate("2018/04/13", "DD/MM/YYYY")') == "13/04/2018"

    def test_format_date_requires_date(self, grammar: Grammar) -> None:
        with pytest.raises(CalculationError):
            _value(grammar, 'formatDate(12, "YYYY")')

    def test_format_calendar_fills_missing_fields(self) -> None:
        assert format_calendar(CalendarValue(hour=7), "HH:mm:ss") == "07:00:00"
