"""Thread-safe holder for the latest published Snapshot."""

from __future__ import annotations

from threading import Lock

from .models import Snapshot


class SnapshotCache:
    """Holds exactly one immutable Snapshot and swaps it atomically.

    Writer: the hub's ingestion path (event loop).
    Readers: HTTP routes, SSE stream, listeners, any other thread.
    Readers always see a whole snapshot, old or new.
    """

    def __init__(self, initial: Snapshot | None = None) -> None:
        self._snapshot = initial if initial is not None else Snapshot.empty()
        self._lock = Lock()

    def publish(self, snapshot: Snapshot) -> None:
        """Replace the current snapshot."""
        with self._lock:
            self._snapshot = snapshot

    def get(self) -> Snapshot:
        with self._lock:
            return self._snapshot
