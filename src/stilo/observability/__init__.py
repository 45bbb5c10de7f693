"""Dev-server observability — one event log for the whole runtime.

Aggregates events from:
- **Pounce**: Connection lifecycle (open, request, response, disconnect, close)
- **Watch session**: Tree rebuilds and watcher failures
- **Broadcast hub**: Fan-out results and per-client delivery failures
- **Build trigger**: Stylesheet build outcomes

Quick Start:
    >>> from stilo.observability import StackCollector, EventLog
    >>> log = EventLog()
    >>> collector = StackCollector(log)
    >>> collector.record_build("src/style.scss", outcome="success")

"""

from stilo.observability.collector import StackCollector
from stilo.observability.events import (
    BuildFinished,
    ClientConnected,
    ClientDisconnected,
    DeliveryFailed,
    MessageBroadcast,
    StackEvent,
    TreeRebuilt,
    WatcherFailed,
    now_ns,
)
from stilo.observability.log import EventLog

__all__ = [
    "BuildFinished",
    "ClientConnected",
    "ClientDisconnected",
    "DeliveryFailed",
    "EventLog",
    "MessageBroadcast",
    "StackCollector",
    "StackEvent",
    "TreeRebuilt",
    "WatcherFailed",
    "now_ns",
]
