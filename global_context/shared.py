"""Global factory injected in place of ``global_context.context.create_context``."""
from typing import TypeVar

from global_context.config import get_config
from global_context.context import Context
from global_context.context import create_context as base_create_context
from global_context.runtime.registry import ContextRegistry, get_registry, on_reload

T = TypeVar("T")


def registry() -> ContextRegistry:
    return get_registry(get_config().namespace, base_create_context)


# A reload of this module starts a new server generation
on_reload(registry())


def create_context(default_value: T, name: str, package_name: str, package_version: str) -> Context[T]:
    """Registry-backed replacement for ``global_context.context.create_context``.

    Args:
        default_value: Default for the context if this is the first request
        name: Identity of the context, derived from its file and variable
        package_name: Name of the package declaring the context
        package_version: Version of that package; only the major part matters

    Returns:
        The context shared by every copy of the package with the same major version
    """
    return registry().acquire(default_value, name, package_name, package_version)
