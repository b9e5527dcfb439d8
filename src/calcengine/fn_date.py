"""Date and time support: CalendarValue, date value types, formatDate.

Dates are written as quoted tokens matching strict format strings, using
the familiar ``YYYY MM DD HH mm ss`` placeholders, e.g. ``"2018/04/13"``.
Parsed values are plain :class:`CalendarValue` records so that the engine
does not depend on any particular date library.
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass, fields
from typing import Any, Callable

from calcengine.valuetypes import NO_MATCH, ValueType

# placeholder -> (strftime directive, CalendarValue field, width)
_PLACEHOLDERS: dict[str, tuple[str, str, int]] = {
    "YYYY": ("%Y", "year", 4),
    "MM": ("%m", "month", 2),
    "DD": ("%d", "day", 2),
    "HH": ("%H", "hour", 2),
    "mm": ("%M", "minute", 2),
    "ss": ("%S", "second", 2),
}
_PLACEHOLDER_RE = re.compile("|".join(_PLACEHOLDERS))

DEFAULT_DATE_FORMATS: dict[str, str] = {
    "datetime": '"YYYY/MM/DD HH:mm"',
    "date": '"YYYY/MM/DD"',
    "time": '"HH:mm"',
}


@dataclass(frozen=True)
class CalendarValue:
    """A calendar date and/or time of day.

    Fields that the source format did not mention are ``None``.
    """

    year: int | None = None
    month: int | None = None
    day: int | None = None
    hour: int | None = None
    minute: int | None = None
    second: int | None = None

    def present(self) -> set[str]:
        return {f.name for f in fields(self) if getattr(self, f.name) is not None}

    def to_datetime(self) -> datetime.datetime:
        return datetime.datetime(
            self.year or 1900,
            self.month or 1,
            self.day or 1,
            self.hour or 0,
            self.minute or 0,
            self.second or 0,
        )


def _to_strptime(pattern: str) -> str:
    escaped = pattern.replace("%", "%%")
    return _PLACEHOLDER_RE.sub(lambda m: _PLACEHOLDERS[m.group(0)][0], escaped)


def _fields_of(pattern: str) -> list[str]:
    return [_PLACEHOLDERS[m.group(0)][1] for m in _PLACEHOLDER_RE.finditer(pattern)]


def format_calendar(value: CalendarValue, pattern: str) -> str:
    """Render *value* using a ``YYYY/MM/DD HH:mm:ss`` style *pattern*."""

    def _sub(match: re.Match) -> str:
        _, name, width = _PLACEHOLDERS[match.group(0)]
        field_value = getattr(value, name)
        return str(field_value or 0).zfill(width)

    return _PLACEHOLDER_RE.sub(_sub, pattern)


def calendar_type(name: str, pattern: str) -> ValueType:
    """Value type parsing tokens that strictly match *pattern*.

    Strict means every placeholder must be fully written (``04`` not ``4``)
    and the date must exist.
    """
    directive = _to_strptime(pattern)
    wanted = _fields_of(pattern)

    def parse(token: str) -> Any:
        try:
            parsed = datetime.datetime.strptime(token, directive)
        except ValueError:
            return NO_MATCH
        if parsed.strftime(directive) != token:
            return NO_MATCH
        return CalendarValue(**{f: getattr(parsed, f) for f in wanted})

    def accepts(value: Any) -> bool:
        return isinstance(value, CalendarValue) and value.present() == set(wanted)

    return ValueType(
        name,
        parse,
        lambda v: format_calendar(v, pattern),
        CalendarValue,
        accepts,
    )


def date_value_types(
    lang: Callable[[str], str] | None = None,
    formats: dict[str, str] | None = None,
) -> list[ValueType]:
    """Return datetime, date and time value types, most specific first.

    Patterns without surrounding quotes get them, so configuration files
    may write ``DD/MM/YYYY`` for ``"DD/MM/YYYY"``.
    """
    lang = lang or (lambda text: text)
    formats = formats or DEFAULT_DATE_FORMATS
    types = []
    for name, pattern in formats.items():
        pattern = lang(pattern)
        if not pattern.startswith('"'):
            pattern = f'"{pattern}"'
        types.append(calendar_type(name, pattern))
    return types


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


def _fn_format_date(date: Any, pattern: Any) -> str:
    """formatDate(date, format) -- render a date with a placeholder pattern."""
    if not isinstance(date, CalendarValue):
        raise TypeError(f"expecting a date, found {date!r}")
    return format_calendar(date, str(pattern))


# token -> (parameter description, calculate)
DATE_FUNCTIONS: dict[str, tuple[str, Callable[..., Any]]] = {
    "formatDate": ("date, format", _fn_format_date),
}
