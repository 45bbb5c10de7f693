"""Event log — the bounded store behind ``/__stilo/stats``.

Keeps the most recent ``StackEvent`` objects in a ring buffer.  Session,
hub and build events carry a path-like field (a canonical path, the
stylesheet source or a client id) that ``query`` can filter on.

Thread Safety:
    All methods are protected by a ``threading.Lock``.  Pounce workers and
    the event loop may append concurrently.

"""

import threading
from collections import Counter, deque
from typing import Any

from stilo.observability.events import BuildFinished, StackEvent, TreeRebuilt

# Attributes consulted (in order) when filtering events by path.
_PATH_FIELDS = ("path", "trigger_path", "source", "client_id")


def _event_path(event: object) -> str:
    for name in _PATH_FIELDS:
        value = getattr(event, name, None)
        if value:
            return str(value)
    return ""


class EventLog:
    """Bounded event store; the oldest events fall off when it is full.

    Args:
        max_events: Maximum number of events to retain.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[StackEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: StackEvent) -> None:
        with self._lock:
            self._events.append(event)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[StackEvent]:
        """Matching events, most recent first.

        Args:
            event_type: Only events of this type.
            since_ns: Only events stamped at or after this monotonic time.
            path: Only events whose path-like field contains this string.
            limit: Maximum number of events to return.

        """
        with self._lock:
            newest_first = list(reversed(self._events))

        matches: list[StackEvent] = []
        for event in newest_first:
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and getattr(event, "timestamp_ns", 0) < since_ns:
                continue
            if path is not None and path not in _event_path(event):
                continue
            matches.append(event)
            if len(matches) == limit:
                break
        return matches

    def latest(self, event_type: type) -> StackEvent | None:
        """The most recent event of *event_type*, if any."""
        found = self.query(event_type=event_type, limit=1)
        return found[0] if found else None

    def stats(self) -> dict[str, Any]:
        """Counts per event type plus the last rebuild and build outcome."""
        with self._lock:
            by_type = Counter(type(event).__name__ for event in self._events)
            total = len(self._events)

        rebuild = self.latest(TreeRebuilt)
        build = self.latest(BuildFinished)
        return {
            "total": total,
            "max_events": self._max_events,
            "by_type": dict(by_type),
            "last_rebuild": None if rebuild is None else {
                "trigger_path": rebuild.trigger_path,  # type: ignore[union-attr]
                "entries": rebuild.entries,  # type: ignore[union-attr]
            },
            "last_build": None if build is None else build.outcome,  # type: ignore[union-attr]
        }
