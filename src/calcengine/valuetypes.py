"""Value types: how tokens become values and values become tokens.

A value type is a named pair of functions.  ``parse`` receives a token and
returns the matching value, or :data:`NO_MATCH` when the token is not of
this type (``None`` is a legitimate value, for the ``null`` type).
``format`` turns a value produced by this type back into a token.

Supported out of the box:

- ``null`` and ``boolean`` keyword tokens
- ``string``: ``"text"`` with ``\\"`` escapes
- ``hexadecimal`` / ``octal`` / ``binary``: ``0x1F``, ``0o17``, ``0b101``
- ``decimal`` (``12.5``) and ``integer`` (``12``)

Date and time types live in :mod:`calcengine.fn_date`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable


class _NoMatch:
    """Sentinel returned by a value type that does not recognize a token."""

    _instance: _NoMatch | None = None

    def __new__(cls) -> _NoMatch:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_MATCH"

    def __bool__(self) -> bool:
        return False


NO_MATCH: Any = _NoMatch()


@dataclass(eq=False)
class ValueType:
    """A pluggable kind of value.

    Attributes:
        name: Unique identifier, e.g. ``"integer"`` or ``"hexadecimal"``.
        parse: ``token -> value`` or :data:`NO_MATCH`.
        format: ``value -> token``.
        python_type: Python type(s) this value type claims when a computed
            value needs a type (see ``Grammar.infer_type``).  ``None`` means
            the type is never inferred, only parsed.
        accepts: Optional predicate replacing the ``python_type`` check.
    """

    name: str
    parse: Callable[[str], Any]
    format: Callable[[Any], str]
    python_type: type | tuple[type, ...] | None = None
    accepts: Callable[[Any], bool] | None = None

    def claims(self, value: Any) -> bool:
        """True if a computed *value* should be typed with this value type."""
        if self.accepts is not None:
            return self.accepts(value)
        if self.python_type is None:
            return False
        kinds = self.python_type if isinstance(self.python_type, tuple) else (self.python_type,)
        # exact match so that True is not mistaken for an integer
        return type(value) in kinds

    def __repr__(self) -> str:
        return f"ValueType({self.name!r})"


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------


def null_type(token: str = "null") -> ValueType:
    def parse(t: str) -> Any:
        return None if t == token else NO_MATCH

    return ValueType("null", parse, lambda v: token, type(None))


def boolean_type(true_token: str = "true", false_token: str = "false") -> ValueType:
    def parse(t: str) -> Any:
        if t == true_token:
            return True
        if t == false_token:
            return False
        return NO_MATCH

    return ValueType("boolean", parse, lambda v: true_token if v else false_token, bool)


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


def parse_string(token: str) -> Any:
    if len(token) >= 2 and token[0] == '"' and token[-1] == '"':
        return token[1:-1].replace('\\"', '"')
    return NO_MATCH


def format_string(value: Any) -> str:
    return '"' + str(value).replace('"', '\\"') + '"'


def string_type() -> ValueType:
    return ValueType("string", parse_string, format_string, str)


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def regex_type(
    name: str,
    pattern: str,
    parse: Callable[[str], Any],
    format: Callable[[Any], str],
    python_type: type | tuple[type, ...] | None = None,
) -> ValueType:
    """Build a value type recognizing tokens that fully match *pattern*."""
    regex = re.compile(pattern, re.ASCII)

    def _parse(token: str) -> Any:
        if regex.fullmatch(token):
            return parse(token)
        return NO_MATCH

    return ValueType(name, _parse, format, python_type)


def radix_type(name: str, prefix: str, base: int, digits: str) -> ValueType:
    """Integer written with a radix *prefix* such as ``0x``."""
    spec = {16: "x", 8: "o", 2: "b"}[base]

    def _format(value: Any) -> str:
        n = int(value)
        sign = "-" if n < 0 else ""
        return sign + prefix + format(abs(n), spec)

    return regex_type(
        name,
        re.escape(prefix) + f"[{digits}]+",
        lambda token: int(token[len(prefix):], base),
        _format,
    )


def format_decimal(value: Any) -> str:
    """Format a number without exponent notation."""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if value != value or value in (float("inf"), float("-inf")):
        return str(value)
    text = format(Decimal(repr(value)), "f")
    if isinstance(value, float) and "." not in text:
        # keep large floats distinguishable from integers
        text += ".0"
    return text


def format_integer(value: Any) -> str:
    return str(int(round(value)))


def decimal_type() -> ValueType:
    return regex_type("decimal", r"\d+\.\d+", float, format_decimal, float)


def integer_type() -> ValueType:
    return regex_type("integer", r"\d+", int, format_integer, int)


def default_value_types(lang: Callable[[str], str] | None = None) -> list[ValueType]:
    """Return the standard value types in registration order.

    Date and time types are not included; they are inserted before
    ``string`` by ``add_default_types`` when enabled.
    """
    lang = lang or (lambda text: text)
    return [
        null_type(lang("null")),
        boolean_type(lang("true"), lang("false")),
        string_type(),
        radix_type("hexadecimal", "0x", 16, "0-9a-fA-F"),
        radix_type("octal", "0o", 8, "0-7"),
        radix_type("binary", "0b", 2, "01"),
        decimal_type(),
        integer_type(),
    ]
