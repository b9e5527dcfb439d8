"""Structured event logging for calcengine.

Provides the event schema, a filesystem NDJSON sink, and safe emit
helpers that never raise uncaught exceptions.
"""

from calcengine.logging.events import (
    CalcEvent,
    EventLevel,
    EventType,
    emit,
    emit_error,
    emit_event,
    emit_failure,
    emit_info,
    emit_warning,
    error_code_for,
    get_sink,
    set_log_dir,
    truncate_context,
)
from calcengine.logging.sink import EventSink

__all__ = [
    "CalcEvent",
    "EventLevel",
    "EventSink",
    "EventType",
    "emit",
    "emit_error",
    "emit_event",
    "emit_failure",
    "emit_info",
    "emit_warning",
    "error_code_for",
    "get_sink",
    "set_log_dir",
    "truncate_context",
]
