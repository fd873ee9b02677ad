"""Snapshot store with explicit subscriptions"""
import dataclasses
from typing import Any, Callable

from dashboard.core.domain.snapshot import RefreshSnapshot
from dashboard.core.state.subscribers import Subscribers

SnapshotListener = Callable[[RefreshSnapshot], None]


class SnapshotStore:
    """
    Holds the current RefreshSnapshot and notifies subscribers on change.

    Lifecycle: constructed at startup, passed by reference to the refresh
    coordinator (the only writer) and to downstream derivations, and closed
    at shutdown.
    """

    def __init__(self, initial: RefreshSnapshot | None = None):
        self._snapshot = initial or RefreshSnapshot()
        self._subscribers: Subscribers[RefreshSnapshot] = Subscribers("Snapshot")

    @property
    def snapshot(self) -> RefreshSnapshot:
        return self._snapshot

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register a listener called with every new snapshot.

        Returns:
            Callable that removes the listener
        """
        return self._subscribers.subscribe(listener)

    def update(self, **fields: Any) -> RefreshSnapshot:
        """
        Replace the given snapshot fields and notify listeners once.

        Raises:
            TypeError: If a field name is not part of RefreshSnapshot
        """
        self._snapshot = dataclasses.replace(self._snapshot, **fields)
        self._subscribers.notify(self._snapshot)
        return self._snapshot

    def close(self) -> None:
        """Drop all listeners"""
        self._subscribers.clear()
