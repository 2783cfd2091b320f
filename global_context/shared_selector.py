"""Global factory injected in place of ``global_context.selector.create_context``."""
from typing import TypeVar

from global_context.config import get_config
from global_context.runtime.registry import ContextRegistry, get_registry, on_reload
from global_context.selector import SelectorContext
from global_context.selector import create_context as base_create_context

T = TypeVar("T")


def registry() -> ContextRegistry:
    return get_registry(get_config().selector_namespace, base_create_context)


on_reload(registry())


def create_context(
    default_value: T, name: str, package_name: str, package_version: str
) -> SelectorContext[T]:
    return registry().acquire(default_value, name, package_name, package_version)
