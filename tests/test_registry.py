"""Tests for the runtime registry and the global factories built on it."""
import importlib
import threading
import time

import pytest
from packaging.version import InvalidVersion

from global_context.context import Context
from global_context.context import create_context as create_native_context
from global_context.runtime.registry import (
    ContextRegistry,
    get_registry,
    major_version,
    on_reload,
    reset_registry,
    set_registry,
)
from global_context.selector import SelectorContext


@pytest.fixture
def registry():
    return ContextRegistry("global-context", create_native_context)


@pytest.fixture(autouse=True)
def clean_registries(monkeypatch):
    monkeypatch.delenv("GLOBAL_CONTEXT_ENV", raising=False)
    monkeypatch.delenv("GLOBAL_CONTEXT_NAMESPACE", raising=False)
    monkeypatch.delenv("GLOBAL_CONTEXT_SELECTOR_NAMESPACE", raising=False)
    reset_registry()
    yield
    reset_registry()


class TestKeys:

    def test_key_format(self, registry):
        assert registry.key_for("Foo", "my-pkg", "1.2.3") == "global-context:my-pkg/Foo/@1"

    def test_prerelease_uses_major(self):
        assert major_version("3.0.0rc1") == 3
        assert major_version("0.4.1") == 0

    @pytest.mark.parametrize(
        "version,major",
        [
            ("1.2.0-beta.1", 1),
            ("1.0.0+build.5", 1),
            ("2.0.0-next.3", 2),
            ("9.0.0-next.12", 9),
            ("1.0.0-alpha.beta", 1),
            ("2.0.0-canary.3", 2),
            ("1.0.0-rc.1+build.7", 1),
            ("v3.1.0", 3),
        ],
    )
    def test_semver_versions_use_major(self, registry, version, major):
        assert major_version(version) == major
        assert registry.key_for("Foo", "my-pkg", version) == f"global-context:my-pkg/Foo/@{major}"

    def test_semver_prerelease_shares_instance_with_release(self, registry):
        first = registry.acquire("a", "Foo", "my-pkg", "9.0.0-next.12")
        second = registry.acquire("b", "Foo", "my-pkg", "9.1.0")
        assert first is second

    def test_invalid_version_raises(self, registry):
        with pytest.raises(InvalidVersion):
            registry.key_for("Foo", "my-pkg", "not a version")


class TestAcquire:

    def test_same_major_version_shares_instance(self, registry):
        first = registry.acquire("v1", "Foo", "pkg", "1.2.0")
        second = registry.acquire("v2", "Foo", "pkg", "1.9.9")
        assert first is second

    def test_first_writer_wins(self, registry):
        registry.acquire("v1", "Foo", "pkg", "1.2.0")
        context = registry.acquire("v2", "Foo", "pkg", "1.9.9")
        assert context.default_value == "v1"

    def test_new_major_version_gets_new_instance(self, registry):
        one = registry.acquire(None, "Foo", "pkg", "1.2.0")
        two = registry.acquire(None, "Foo", "pkg", "2.0.0")
        assert one is not two
        assert len(registry) == 2

    def test_different_names_and_packages_are_separate(self, registry):
        a = registry.acquire(None, "Foo", "pkg", "1.0.0")
        b = registry.acquire(None, "Bar", "pkg", "1.0.0")
        c = registry.acquire(None, "Foo", "other", "1.0.0")
        assert len({id(a), id(b), id(c)}) == 3

    def test_concurrent_acquire_creates_one_instance(self):
        calls = []

        def slow_factory(value):
            calls.append(value)
            time.sleep(0.01)
            return Context(value)

        registry = ContextRegistry("global-context", slow_factory)
        results = []
        barrier = threading.Barrier(8)

        def worker(index):
            barrier.wait()
            results.append(registry.acquire(index, "Foo", "pkg", "1.0.0"))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert all(result is results[0] for result in results)


class TestPurge:

    def test_purge_removes_namespace_entries(self, registry):
        registry.acquire(None, "Foo", "pkg", "1.0.0")
        registry.acquire(None, "Bar", "pkg", "1.0.0")
        assert registry.purge() == 2
        assert len(registry) == 0

    def test_purge_with_prefix(self, registry):
        registry.acquire(None, "Foo", "pkg", "1.0.0")
        registry.acquire(None, "Foo", "other", "1.0.0")
        assert registry.purge("global-context:pkg/") == 1
        assert registry.keys() == ["global-context:other/Foo/@1"]

    def test_entry_is_recreated_after_purge(self, registry):
        before = registry.acquire(None, "Foo", "pkg", "1.0.0")
        registry.purge()
        after = registry.acquire(None, "Foo", "pkg", "1.0.0")
        assert before is not after

    def test_on_reload_purges_outside_production(self, registry):
        registry.acquire(None, "Foo", "pkg", "1.0.0")
        assert on_reload(registry) == 1
        assert len(registry) == 0

    def test_on_reload_keeps_entries_in_production(self, registry, monkeypatch):
        monkeypatch.setenv("GLOBAL_CONTEXT_ENV", "production")
        registry.acquire(None, "Foo", "pkg", "1.0.0")
        assert on_reload(registry) == 0
        assert "global-context:pkg/Foo/@1" in registry


class TestSingleton:

    def test_get_registry_is_per_namespace(self):
        native = get_registry("global-context", create_native_context)
        assert get_registry("global-context", create_native_context) is native
        assert get_registry("global-context-selector", create_native_context) is not native

    def test_set_registry_injects_instance(self):
        isolated = ContextRegistry("global-context", create_native_context)
        set_registry(isolated)
        assert get_registry("global-context", create_native_context) is isolated


class TestGlobalFactories:

    def test_shared_factory_deduplicates(self):
        from global_context import shared

        first = shared.create_context(0, "abc123", "my-pkg", "1.0.0")
        second = shared.create_context(99, "abc123", "my-pkg", "1.5.0")
        assert isinstance(first, Context)
        assert first is second
        assert second.get() == 0

    def test_selector_factory_uses_its_own_namespace(self):
        from global_context import shared, shared_selector

        native = shared.create_context(0, "abc123", "my-pkg", "1.0.0")
        selector = shared_selector.create_context(0, "abc123", "my-pkg", "1.0.0")
        assert isinstance(selector, SelectorContext)
        assert selector is not native
        assert shared_selector.registry().keys() == ["global-context-selector:my-pkg/abc123/@1"]

    def test_module_reload_drops_previous_generation(self):
        from global_context import shared

        before = shared.create_context(0, "abc123", "my-pkg", "1.0.0")
        importlib.reload(shared)
        after = shared.create_context(0, "abc123", "my-pkg", "1.0.0")
        assert before is not after

    def test_module_reload_in_production_keeps_contexts(self, monkeypatch):
        from global_context import shared

        monkeypatch.setenv("GLOBAL_CONTEXT_ENV", "production")
        before = shared.create_context(0, "abc123", "my-pkg", "1.0.0")
        importlib.reload(shared)
        after = shared.create_context(0, "abc123", "my-pkg", "1.0.0")
        assert before is after
