"""Contexts that support subscribing to a selected part of their value."""
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, TypeVar

from global_context.context import Context

T = TypeVar("T")
Selector = Callable[[Any], Any]
Listener = Callable[[Any], None]


class _Subscription:
    def __init__(self, selector: Selector, listener: Listener):
        self.selector = selector
        self.listener = listener


class SelectorContext(Context[T]):
    """Context whose consumers can watch a derived slice of the value.

    Listeners fire only when the slice they selected changes, both when a
    value is provided and when the provided block ends.
    """

    def __init__(self, default_value: T, name: Optional[str] = None):
        super().__init__(default_value, name)
        self._subscriptions: List[_Subscription] = []
        self._lock = threading.Lock()

    def select(self, selector: Selector) -> Any:
        """Apply ``selector`` to the current value."""
        return selector(self.get())

    def subscribe(self, selector: Selector, listener: Listener) -> Callable[[], None]:
        """Register a listener for changes in ``selector(value)``.

        Args:
            selector: Maps the context value to the part the listener cares about
            listener: Called with the new selected value

        Returns:
            Function that removes the subscription
        """
        subscription = _Subscription(selector, listener)
        with self._lock:
            self._subscriptions.append(subscription)

        def unsubscribe():
            with self._lock:
                if subscription in self._subscriptions:
                    self._subscriptions.remove(subscription)

        return unsubscribe

    def _notify(self, before: Any, after: Any):
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            old = subscription.selector(before)
            new = subscription.selector(after)
            if old != new:
                subscription.listener(new)

    @contextmanager
    def provide(self, value: T) -> Iterator[T]:
        previous = self.get()
        with super().provide(value):
            self._notify(previous, value)
            try:
                yield value
            finally:
                self._notify(value, previous)


def create_context(default_value: T) -> SelectorContext[T]:
    return SelectorContext(default_value)
