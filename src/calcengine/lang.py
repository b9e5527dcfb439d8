"""Translation of grammar tokens and messages.

A *lang* function maps an English text (token, parameter description,
message key) to its translation, returning the text itself when there is
none.  Default grammars and error messages are built through it.
"""

from __future__ import annotations

from typing import Callable

Lang = Callable[[str], str]

LANGUAGES: dict[str, dict[str, str]] = {
    "fr": {
        "in": "dans",
        "&&": "et",
        "||": "ou",
        "sqrt": "racine",
        "pow": "puissance",
        "if": "si",
        "test, trueValue, falseValue": "test, valeurVrai, valeurFaux",
    },
    "en": {
        "&&": "and",
        "||": "or",
    },
}


def identity(text: str) -> str:
    return text


def make_lang(language: str | None = None, translations: dict[str, str] | None = None) -> Lang:
    """Build a lang function for *language*, extended by *translations*.

    Unknown languages translate nothing.  Entries of *translations* win
    over the built-in table.
    """
    table = dict(LANGUAGES.get(language or "", {}))
    table.update(translations or {})
    if not table:
        return identity

    def lang(text: str) -> str:
        return table.get(text) or text

    lang.table = table  # type: ignore[attr-defined]
    return lang
