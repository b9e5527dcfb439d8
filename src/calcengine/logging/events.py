"""Event schema and module-level emit helpers.

Timestamps are UTC ISO-8601 with a ``Z`` suffix.  Emitting never raises:
a failing sink is reported on stderr, at most once a minute.  Without a
configured sink (see :func:`set_log_dir`) events are discarded.
"""

from __future__ import annotations

import contextlib
import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from calcengine import errors


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Parsing
    parse_completed = "parse_completed"
    parse_failed = "parse_failed"

    # Reduction
    reduce_completed = "reduce_completed"
    reduce_failed = "reduce_failed"

    # State changes
    variable_assigned = "variable_assigned"
    grammar_entry_overridden = "grammar_entry_overridden"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

END_OF_FORMULA = "end_of_formula"
UNTERMINATED_STRING = "unterminated_string"
UNEXPECTED_TOKEN = "unexpected_token"
EXPECTED_VALUE = "expected_value"
INVALID_NODE_KIND = "invalid_node_kind"
NOT_ASSIGNABLE = "not_assignable"
CALCULATION_FAILED = "calculation_failed"
DIVISION_BY_ZERO = "division_by_zero"
WRONG_ARGUMENT_COUNT = "wrong_argument_count"

# message keys refining the code of their error class
_KEY_CODES: dict[str, str] = {
    errors.DIVISION_BY_ZERO: DIVISION_BY_ZERO,
    errors.WRONG_ARGUMENT_COUNT: WRONG_ARGUMENT_COUNT,
}

_CLASS_CODES: dict[type, str] = {
    errors.EndOfFormulaError: END_OF_FORMULA,
    errors.UnterminatedStringError: UNTERMINATED_STRING,
    errors.UnexpectedTokenError: UNEXPECTED_TOKEN,
    errors.ExpectedValueError: EXPECTED_VALUE,
    errors.InvalidNodeKindError: INVALID_NODE_KIND,
    errors.NotAssignableError: NOT_ASSIGNABLE,
    errors.CalculationError: CALCULATION_FAILED,
}


def error_code_for(exc: BaseException) -> str:
    """Return the error code of *exc*; unknown exceptions use their class name."""
    code = _KEY_CODES.get(getattr(exc, "message_key", ""))
    if code:
        return code
    for cls in type(exc).__mro__:
        if cls in _CLASS_CODES:
            return _CLASS_CODES[cls]
    return type(exc).__name__


# ---------------------------------------------------------------------------
# Context truncation
# ---------------------------------------------------------------------------

MAX_CONTEXT_CHARS = 256
_TRUNCATED = "...[truncated]"


def truncate_context(context: dict[str, Any]) -> dict[str, Any]:
    """Copy *context*, cutting strings longer than ``MAX_CONTEXT_CHARS``.

    Formulas and assigned values are user input of any length; the log
    keeps one bounded line per event.
    """
    return {key: _clip(value) for key, value in context.items()}


def _clip(value: Any) -> Any:
    if isinstance(value, str):
        if len(value) <= MAX_CONTEXT_CHARS:
            return value
        return value[:MAX_CONTEXT_CHARS] + _TRUNCATED
    if isinstance(value, dict):
        return truncate_context(value)
    if isinstance(value, (list, tuple)):
        return [_clip(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class CalcEvent(BaseModel):
    """One parse, reduce or state-change event of a calculator."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None

    @property
    def formula(self) -> str | None:
        """The formula the event is about, when there is one."""
        return self.context.get("formula")

    def summary(self) -> str:
        """One display line: ``[ts] LEVEL   event_type: message  (code)``."""
        line = f"[{self.ts}] {self.level.value.upper():7s} {self.event_type.value}: {self.message}"
        if self.error_code:
            line += f"  ({self.error_code})"
        return line


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

_sink: Any = None  # EventSink | None


def set_log_dir(log_dir: Any, *, fsync: bool = False) -> None:
    """Send events to an NDJSON file under *log_dir*.

    ``None`` removes the sink, after which events are discarded again.
    """
    global _sink
    if log_dir is None:
        _sink = None
        return

    from calcengine.logging.sink import EventSink

    _sink = EventSink(Path(log_dir), fsync=fsync)


def get_sink() -> Any:
    """Return the module-level sink, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Emit helpers
# ---------------------------------------------------------------------------

_WARN_EVERY_SECS = 60.0
_last_warning_at: float | None = None


def _report_failure() -> None:
    """Print the logging failure being handled, at most once a minute."""
    global _last_warning_at
    now = time.monotonic()
    if _last_warning_at is not None and now - _last_warning_at < _WARN_EVERY_SECS:
        return
    _last_warning_at = now
    with contextlib.suppress(OSError, ValueError):
        print(f"[calcengine] event logging failed: {traceback.format_exc()}", file=sys.stderr)


def emit(event: CalcEvent) -> None:
    """Write *event* to the configured sink.  **Never raises.**"""
    sink = get_sink()
    if sink is None:
        return
    try:
        sink.write(event.model_copy(update={"context": truncate_context(event.context)}))
    except Exception:
        _report_failure()


def emit_event(
    level: EventLevel,
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    emit(
        CalcEvent(
            level=level,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        )
    )


def emit_info(event_type: EventType, message: str, context: dict[str, Any] | None = None) -> None:
    emit_event(EventLevel.info, event_type, message, context)


def emit_warning(event_type: EventType, message: str, context: dict[str, Any] | None = None, *, error_code: str | None = None) -> None:
    emit_event(EventLevel.warning, event_type, message, context, error_code=error_code)


def emit_error(event_type: EventType, message: str, context: dict[str, Any] | None = None, *, error_code: str | None = None) -> None:
    emit_event(EventLevel.error, event_type, message, context, error_code=error_code)


def emit_failure(
    level: EventLevel,
    event_type: EventType,
    exc: errors.CalculatorError,
    message: str,
    formula: str,
) -> None:
    """Report a parse or reduce error with its location in *formula*."""
    emit_event(
        level,
        event_type,
        message,
        {
            "formula": formula,
            "index": exc.index,
            "length": exc.length,
            "message_key": exc.message_key,
        },
        error_code=error_code_for(exc),
    )
