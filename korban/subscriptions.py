"""Push-based live views over Firestore queries."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from .utils import snapshot_to_dict

Handler = Callable[[list[dict[str, Any]]], None]


class Subscription:
    """A cancellable live view of a Firestore query.

    The handler receives the full, current result set as a list of dicts each
    time the backend pushes a change. After ``cancel()`` returns the handler
    is never invoked again, even for snapshots already in flight.
    """

    def __init__(
        self,
        query: Any,
        handler: Handler,
        transform: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
    ) -> None:
        self._handler = handler
        self._transform = transform
        self._lock = threading.RLock()
        self._cancelled = False
        self._watch: Any = None
        watch = query.on_snapshot(self._on_snapshot)
        with self._lock:
            self._watch = watch
            cancelled = self._cancelled
        # cancelled from the first snapshot, before the watch was returned
        if cancelled:
            watch.unsubscribe()

    @property
    def active(self) -> bool:
        return not self._cancelled

    def _on_snapshot(self, docs: Any, changes: Any, read_time: Any) -> None:
        records = [snapshot_to_dict(doc) for doc in docs]
        if self._transform is not None:
            records = [self._transform(record) for record in records]
        with self._lock:
            if self._cancelled:
                return
            self._handler(records)

    def cancel(self) -> None:
        """Stop the server-side listener. Safe to call more than once."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            watch = self._watch
        if watch is not None:
            watch.unsubscribe()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel()
