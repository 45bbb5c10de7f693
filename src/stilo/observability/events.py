"""Unified event model for dev-server observability.

Defines event types for the watch session, the broadcast hub and the
stylesheet build.  Pounce connection lifecycle events are stored as-is.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import Literal


# ---------------------------------------------------------------------------
# Watch session events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TreeRebuilt:
    """The tree snapshot was rebuilt.

    Attributes:
        trigger_path: Canonical path of the change that caused the rebuild
            (empty for connection-time or startup builds).
        change_kind: Kind of change, or ``"snapshot"`` for non-event builds.
        entries: Number of entries in the snapshot (README included).
        duration_ms: Time spent walking the tree.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    trigger_path: str
    change_kind: str
    entries: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class WatcherFailed:
    """The filesystem watch backend reported an error.

    Attributes:
        source: Name of the watcher that failed.
        message: Error description.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    source: str
    message: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Broadcast hub events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MessageBroadcast:
    """A message was fanned out to connected clients.

    Attributes:
        message_type: Wire ``type`` of the message.
        clients_notified: Connections the frame was delivered to.
        clients_failed: Connections that failed and were closed.
        path: Path carried by the message, if any.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    message_type: str
    clients_notified: int
    clients_failed: int
    path: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class DeliveryFailed:
    """A single client could not receive a frame and was closed.

    Attributes:
        client_id: Identifier of the failed connection.
        message_type: Wire ``type`` of the undelivered message.
        reason: Why delivery failed.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    client_id: str
    message_type: str
    reason: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ClientConnected:
    """A push-channel client completed its handshake."""

    client_id: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ClientDisconnected:
    """A push-channel client went away."""

    client_id: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Build events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BuildFinished:
    """The external stylesheet build returned.

    Attributes:
        source: Stylesheet source that triggered the build (empty at startup).
        outcome: ``"success"`` or ``"failure"``.
        returncode: Process exit code, or None if it never started.
        duration_ms: Wall time of the build.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    source: str
    outcome: Literal["success", "failure"]
    returncode: int | None
    duration_ms: float
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type StackEvent = (
    TreeRebuilt
    | WatcherFailed
    | MessageBroadcast
    | DeliveryFailed
    | ClientConnected
    | ClientDisconnected
    | BuildFinished
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
