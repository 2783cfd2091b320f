"""Tests for the native and selector context objects."""
import threading

from global_context.context import create_context
from global_context.selector import create_context as create_selector_context


def test_default_value_until_provided():
    theme = create_context("light")
    assert theme.get() == "light"
    with theme.provide("dark") as value:
        assert value == "dark"
        assert theme.get() == "dark"
    assert theme.get() == "light"


def test_provided_value_is_not_visible_to_other_threads():
    theme = create_context("light")
    seen = []

    with theme.provide("dark"):
        thread = threading.Thread(target=lambda: seen.append(theme.get()))
        thread.start()
        thread.join()

    assert seen == ["light"]


def test_selector_listener_fires_only_on_selected_change():
    settings = create_selector_context({"theme": "light", "lang": "en"})
    changes = []
    settings.subscribe(lambda value: value["theme"], changes.append)

    with settings.provide({"theme": "light", "lang": "fr"}):
        assert changes == []
    with settings.provide({"theme": "dark", "lang": "en"}):
        assert settings.select(lambda value: value["theme"]) == "dark"
        assert changes == ["dark"]

    assert changes == ["dark", "light"]


def test_unsubscribe_stops_notifications():
    counter = create_selector_context(0)
    changes = []
    unsubscribe = counter.subscribe(lambda value: value, changes.append)
    unsubscribe()

    with counter.provide(5):
        pass

    assert changes == []
