"""Request-scoped context for the canonical ``request.completed`` log line.

RequestTimingMiddleware (core.telemetry) opens the event when a request
starts and emits it when the response finishes. Routes and services only add
fields:

    from core import set_wide_event_fields

    set_wide_event_fields(lookup="estado", lookup_id=7)
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any]] = ContextVar("wide_event")


def init_wide_event() -> dict[str, Any]:
    """Start a fresh event for the current async context and return it."""
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Return the current event, or an empty dict outside a request."""
    try:
        return _wide_event.get()
    except LookupError:
        return {}


def set_wide_event_field(key: str, value: Any) -> None:
    set_wide_event_fields(**{key: value})


def set_wide_event_fields(**kwargs: Any) -> None:
    """Merge fields into the current event.

    Does nothing until the middleware has seeded the event, so CLI code,
    migrations and unit tests can call services freely.
    """
    event = get_wide_event()
    if event:
        event.update(kwargs)


def clear_wide_event() -> None:
    _wide_event.set({})
