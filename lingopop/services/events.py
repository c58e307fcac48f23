"""Structured log events for notebook queries, model calls and app actions.

Every event renders as ``[TYPE] message (key=value, ...)`` so the log file
stays greppable, and the same details travel on the record as ``event_*``
attributes for handlers that want them unflattened.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


DEFAULT_EVENT_LOGGER = logging.getLogger("lingopop.events")

_MAX_VALUE_LENGTH = 200

EventLogger = logging.Logger | logging.LoggerAdapter


def sanitize_context_value(value: Any) -> Any:
    """Return *value* as a short loggable scalar, or ``None`` if it is blank.

    Numbers and booleans pass through, sequences are joined with commas,
    mappings are cleaned recursively and long strings are cut at 200
    characters.
    """

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Mapping):
        return normalize_context(value) or None
    if isinstance(value, (list, tuple, set, frozenset)):
        text = ", ".join(str(entry) for entry in value)
    elif isinstance(value, Path):
        text = value.as_posix()
    else:
        text = str(value)
    text = text.strip()
    if not text:
        return None
    if len(text) > _MAX_VALUE_LENGTH:
        text = text[:_MAX_VALUE_LENGTH] + "…"
    return text


def normalize_context(values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Sanitize every entry of *values*, dropping blank keys and values."""

    cleaned: Dict[str, Any] = {}
    for key, raw in (values or {}).items():
        if not key:
            continue
        value = sanitize_context_value(raw)
        if value is not None:
            cleaned[str(key)] = value
    return cleaned


def emit_structured_event(
    event_type: str,
    message: str,
    *,
    payload: Optional[Mapping[str, Any]] = None,
    context: Optional[Mapping[str, Any]] = None,
    correlation: Optional[Mapping[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: EventLogger = DEFAULT_EVENT_LOGGER,
) -> None:
    text = str(message).strip()
    sections = {
        "correlation": normalize_context(correlation),
        "context": normalize_context(context),
        "payload": normalize_context(payload),
    }

    details: Dict[str, Any] = {}
    for section in sections.values():
        details.update(section)
    if duration_ms is not None:
        details["duration_ms"] = round(float(duration_ms), 2)

    rendered = f"[{event_type}] {text}" if event_type else text
    if details:
        rendered += " (" + ", ".join(f"{key}={value}" for key, value in details.items()) + ")"

    extra: Dict[str, Any] = {"event_type": event_type or "", "event_message": text}
    for name, section in sections.items():
        if section:
            extra[f"event_{name}"] = section
    if duration_ms is not None:
        extra["event_duration_ms"] = float(duration_ms)
    logger.log(level, rendered, extra=extra)


def emit_db_event(
    action: str,
    *,
    payload: Optional[Mapping[str, Any]] = None,
    correlation: Optional[Mapping[str, Any]] = None,
    duration_ms: Optional[float] = None,
    logger: EventLogger = DEFAULT_EVENT_LOGGER,
) -> None:
    """Log one notebook query at ``DEBUG``."""

    emit_structured_event(
        "DB_QUERY",
        action,
        payload=payload,
        correlation=correlation,
        duration_ms=duration_ms,
        level=logging.DEBUG,
        logger=logger,
    )


def emit_ai_event(
    operation: str,
    *,
    payload: Optional[Mapping[str, Any]] = None,
    duration_ms: Optional[float] = None,
    logger: EventLogger = DEFAULT_EVENT_LOGGER,
) -> None:
    """Log one call to the hosted model at ``INFO``."""

    emit_structured_event(
        "AI_CALL",
        operation,
        payload=payload,
        duration_ms=duration_ms,
        logger=logger,
    )


__all__ = [
    "DEFAULT_EVENT_LOGGER",
    "emit_ai_event",
    "emit_db_event",
    "emit_structured_event",
    "normalize_context",
    "sanitize_context_value",
]
