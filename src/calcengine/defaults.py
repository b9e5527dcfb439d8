"""Default grammar content: types, literals, functions and operators.

Every default token goes through a *lang* function so that a grammar can
be built in another language (see :mod:`calcengine.lang`).
"""

from __future__ import annotations

import math
from typing import Any

from calcengine.fn_date import DATE_FUNCTIONS, date_value_types
from calcengine.fn_math import CONTROL_FUNCTIONS, MATH_FUNCTIONS, MATH_RESULT_TYPES
from calcengine.grammar import Grammar
from calcengine.lang import Lang, identity
from calcengine.operators import DEFAULT_OPERATORS
from calcengine.valuetypes import default_value_types


def add_default_types(
    grammar: Grammar,
    lang: Lang | None = None,
    *,
    dates: bool = False,
    date_formats: dict[str, str] | None = None,
) -> None:
    """Register null, boolean, [datetime, date, time,] string and numbers.

    Date types sit before ``string`` since their tokens are quoted too.
    """
    lang = lang or identity
    for value_type in default_value_types(lang):
        if dates and value_type.name == "string":
            for date_type in date_value_types(lang, date_formats):
                grammar.add_type(date_type)
        grammar.add_type(value_type)


def add_default_literals(grammar: Grammar, lang: Lang | None = None) -> None:
    """Register ``pi``, ``e`` and the ``mem`` variable (initially null)."""
    lang = lang or identity
    grammar.add_literal(lang("pi"), math.pi, type="decimal")
    grammar.add_literal(lang("e"), math.e, type="decimal")
    grammar.add_literal(lang("mem"), None, True)


def add_default_functions(grammar: Grammar, lang: Lang | None = None, *, dates: bool = False) -> None:
    """Register the math functions, ``if`` and, with dates, ``formatDate``."""
    lang = lang or identity
    for token, (params, calculate) in MATH_FUNCTIONS.items():
        grammar.add_function(
            lang(token),
            lang(params),
            calculate=calculate,
            type_name=MATH_RESULT_TYPES.get(token, "decimal"),
        )
    for token, (params, reduce) in CONTROL_FUNCTIONS.items():
        grammar.add_function(lang(token), lang(params), reduce)
    if dates:
        for token, (params, calculate) in DATE_FUNCTIONS.items():
            grammar.add_function(lang(token), lang(params), calculate=calculate, type_name="string")


def add_default_operators(grammar: Grammar, lang: Lang | None = None) -> None:
    """Register the operator table of :mod:`calcengine.operators`."""
    lang = lang or identity
    for spec in DEFAULT_OPERATORS:
        grammar.add_operator(
            lang(spec.token),
            spec.precedence,
            spec.associativity,
            spec.reduce,
            calculate=spec.calculate,
            type_name=spec.type_name,
        )


def default_grammar(
    lang: Lang | None = None,
    *,
    dates: bool = False,
    date_formats: dict[str, str] | None = None,
) -> Grammar:
    """Return a new grammar holding every default entry.

    Args:
        lang: Translation function for tokens, e.g. ``make_lang("fr")``.
        dates: Enable the datetime, date and time value types and
            ``formatDate``.
        date_formats: Override the ``"YYYY/MM/DD"`` style date patterns.
    """
    grammar = Grammar()
    add_default_types(grammar, lang, dates=dates, date_formats=date_formats)
    add_default_literals(grammar, lang)
    add_default_functions(grammar, lang, dates=dates)
    add_default_operators(grammar, lang)
    return grammar


def grammar_from_config(config: dict[str, Any]) -> Grammar:
    """Build the default grammar described by a loaded configuration."""
    from calcengine.lang import make_lang

    lang = make_lang(config.get("language"), config.get("translations"))
    return default_grammar(
        lang,
        dates=bool(config.get("date_types")),
        date_formats=config.get("date_formats"),
    )
