"""Unit tests for core.wide_event module.

Tests the ContextVar-based wide event lifecycle: init, set, get, clear,
and safe no-op behavior outside request context.

NOTE: In production, RequestTimingMiddleware calls init_wide_event() and
immediately populates the dict with request context fields (making it truthy).
set_wide_event_fields() no-ops on an empty dict so calls outside a request
are ignored.
"""

import pytest

from core.wide_event import (
    clear_wide_event,
    get_wide_event,
    init_wide_event,
    set_wide_event_field,
    set_wide_event_fields,
)


def _init_with_request_context() -> dict:
    """Mimic what RequestTimingMiddleware does: init + populate base fields."""
    event = init_wide_event()
    event["service_name"] = "test-api"
    event["request_id"] = "test-req-1"
    return event


@pytest.mark.unit
class TestWideEventLifecycle:
    """Test the full init → set → get → clear lifecycle."""

    def test_init_returns_empty_dict(self):
        event = init_wide_event()
        assert event == {}

    def test_set_and_get_fields(self):
        _init_with_request_context()
        set_wide_event_fields(lookup="estado", lookup_id=7)
        event = get_wide_event()
        assert event["lookup"] == "estado"
        assert event["lookup_id"] == 7

    def test_set_single_field(self):
        _init_with_request_context()
        set_wide_event_field("estabelecimento_id", 3)
        assert get_wide_event()["estabelecimento_id"] == 3

    def test_set_fields_overwrites_existing_key(self):
        _init_with_request_context()
        set_wide_event_fields(key="old")
        set_wide_event_fields(key="new")
        assert get_wide_event()["key"] == "new"

    def test_clear_resets_to_empty(self):
        _init_with_request_context()
        set_wide_event_fields(lookup="pais")
        clear_wide_event()
        assert get_wide_event() == {}

    def test_direct_dict_mutation_reflected_in_get(self):
        """Middleware writes directly to the dict returned by init_wide_event."""
        event = init_wide_event()
        event["http_method"] = "POST"
        assert get_wide_event()["http_method"] == "POST"


@pytest.mark.unit
class TestWideEventOutsideRequest:
    def test_set_fields_is_noop_on_empty_event(self):
        init_wide_event()
        set_wide_event_fields(lookup="raca")
        assert get_wide_event() == {}

    def test_get_after_clear_returns_empty_dict(self):
        clear_wide_event()
        assert get_wide_event() == {}
