"""Plain context objects.

A Context is a named slot with a default value, backed by a ContextVar so
values provided in one thread or task never leak into another.
"""
import contextvars
import itertools
from contextlib import contextmanager
from typing import Any, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")

_counter = itertools.count()


class Context(Generic[T]):
    """Shared state container with a default value."""

    def __init__(self, default_value: T, name: Optional[str] = None):
        self.default_value = default_value
        self.name = name or f"context-{next(_counter)}"
        self._var: contextvars.ContextVar[Any] = contextvars.ContextVar(self.name)

    def get(self) -> T:
        """Current value, or the default when nothing was provided."""
        return self._var.get(self.default_value)

    @contextmanager
    def provide(self, value: T) -> Iterator[T]:
        """Provide ``value`` for the duration of the block."""
        token = self._var.set(value)
        try:
            yield value
        finally:
            self._var.reset(token)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, default={self.default_value!r})"


def create_context(default_value: T) -> Context[T]:
    return Context(default_value)
