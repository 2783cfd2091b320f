"""Process-wide registry that deduplicates contexts.

Duplicated copies of a package each call the global factory with the same
context name, package name and version, so they all land on the same key:

    <namespace>:<package name>/<context name>/@<major version>

Only the major version is part of the key, so semver-compatible duplicates
share one instance. The first caller for a key creates the context; every
later caller gets that exact object back and its default value is ignored.
"""
import logging
import re
import threading
from typing import Any, Callable, Dict, List, Optional

from packaging.version import InvalidVersion, Version

from global_context.config import get_config

logger = logging.getLogger(__name__)

ContextFactory = Callable[[Any], Any]

# Leading numeric component of a semver string, with an optional v or = prefix
SEMVER_MAJOR = re.compile(r"^\s*[vV=]*(\d+)(?:\.\d+){0,2}(?:[-+][0-9A-Za-z.+-]*)?\s*$")


def major_version(package_version: str) -> int:
    """Major component of a version string.

    PEP 440 versions are parsed with ``packaging``. Anything else falls back to
    semver rules, where the major is the leading integer (``9.0.0-next.12``).

    Raises:
        packaging.version.InvalidVersion: If no major version can be found
    """
    try:
        return Version(package_version).major
    except InvalidVersion:
        match = SEMVER_MAJOR.match(package_version)
        if match is None:
            raise
        return int(match.group(1))


class ContextRegistry:
    """Keyed store of context instances, one per key for the process lifetime."""

    def __init__(self, namespace: str, factory: ContextFactory):
        """Initialize an empty registry.

        Args:
            namespace: Prefix shared by every key this registry creates
            factory: Builds a context from a default value on first acquire
        """
        self.namespace = namespace
        self.factory = factory
        self._entries: Dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def prefix(self) -> str:
        return f"{self.namespace}:"

    def key_for(self, context_name: str, package_name: str, package_version: str) -> str:
        return f"{self.prefix}{package_name}/{context_name}/@{major_version(package_version)}"

    def acquire(
        self, default_value: Any, context_name: str, package_name: str, package_version: str
    ) -> Any:
        """Return the context for a key, creating it on first use.

        Args:
            default_value: Default for a newly created context; ignored on a hit
            context_name: Identity of the context within its package
            package_name: Name of the package declaring the context
            package_version: Version of that package

        Returns:
            The single context instance stored under the derived key
        """
        key = self.key_for(context_name, package_name, package_version)
        with self._lock:
            if key not in self._entries:
                self._entries[key] = self.factory(default_value)
                logger.debug("Registered context %s", key)
            return self._entries[key]

    def purge(self, prefix: Optional[str] = None) -> int:
        """Drop every entry whose key starts with ``prefix``.

        Args:
            prefix: Key prefix, defaults to this registry's namespace

        Returns:
            Number of entries removed
        """
        prefix = prefix or self.prefix
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                logger.debug("Deleting context %s", key)
                del self._entries[key]
        return len(stale)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# Singleton instances, one per namespace
_registries: Dict[str, ContextRegistry] = {}
_registries_lock = threading.Lock()


def get_registry(namespace: str, factory: ContextFactory) -> ContextRegistry:
    """Get or create the process registry for a namespace.

    The factory is only used when the registry is created.
    """
    with _registries_lock:
        registry = _registries.get(namespace)
        if registry is None:
            registry = ContextRegistry(namespace, factory)
            _registries[namespace] = registry
        return registry


def set_registry(registry: ContextRegistry) -> Optional[ContextRegistry]:
    """Install a registry for its namespace, returning the one it replaces."""
    with _registries_lock:
        previous = _registries.get(registry.namespace)
        _registries[registry.namespace] = registry
        return previous


def reset_registry(namespace: Optional[str] = None):
    """Forget process registries (all of them when namespace is None)."""
    with _registries_lock:
        if namespace is None:
            _registries.clear()
        else:
            _registries.pop(namespace, None)


def on_reload(registry: ContextRegistry) -> int:
    """Purge stale contexts when a module using the registry is (re)loaded.

    Long-running development servers reload modules in place; contexts from
    the previous generation must not leak into the new one. Production
    processes never purge.

    Returns:
        Number of entries removed
    """
    if get_config().is_production:
        return 0
    removed = registry.purge()
    if removed:
        logger.info("Purged %d context(s) from %s", removed, registry.namespace)
    return removed
