"""Patterns the user chose to show on the chart"""
from typing import Callable, FrozenSet, Iterable

from dashboard.core.state.subscribers import Subscribers


class PatternVisibility:
    """Set of visible pattern keys ("{name}-{timeframe}")"""

    def __init__(self, keys: Iterable[str] = ()):
        self._keys: FrozenSet[str] = frozenset(keys)
        self._subscribers: Subscribers[FrozenSet[str]] = Subscribers("PatternVisibility")

    @property
    def keys(self) -> FrozenSet[str]:
        return self._keys

    def is_visible(self, key: str) -> bool:
        return key in self._keys

    def toggle(self, key: str) -> bool:
        """
        Flip visibility of a pattern key.

        Returns:
            True if the key is visible afterwards
        """
        if key in self._keys:
            self._keys = self._keys - {key}
        else:
            self._keys = self._keys | {key}
        self._subscribers.notify(self._keys)
        return key in self._keys

    def subscribe(self, listener: Callable[[FrozenSet[str]], None]) -> Callable[[], None]:
        return self._subscribers.subscribe(listener)

    def close(self) -> None:
        self._subscribers.clear()
