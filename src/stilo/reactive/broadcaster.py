"""Broadcast hub — pushes JSON frames to every connected browser.

Each browser holds one push-channel connection (an SSE stream).  The hub
owns the set of open connections and fans a message out to all of them.
Delivery is isolated per connection: a failing client is closed and
dropped, and everyone else still receives the frame.

Every connection buffers frames in a bounded queue that its stream
drains.  A client that stops reading loses its oldest frames first; after
``stall_limit`` consecutive drops it is treated as dead and closed, so one
stalled browser never holds up the rest.
"""

from __future__ import annotations

import asyncio
import sys
import threading
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from stilo._errors import DeliveryError
from stilo.reactive.messages import encode

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from stilo._types import ClientID, ConnectionState
    from stilo.observability.collector import StackCollector
    from stilo.reactive.messages import OutboundMessage


# Queued behind the last frame to end a connection's stream.
_CLOSE = object()


def _new_client_id() -> ClientID:
    return uuid.uuid4().hex


@dataclass(eq=False, slots=True)
class ClientConnection:
    """One live push channel to a browser.

    Attributes:
        client_id: Opaque identifier, only used in diagnostics.
        queue_size: Frames buffered before the oldest is dropped.
        stall_limit: Consecutive dropped frames before the connection fails.
        state: ``open``, ``closing`` (draining before close) or ``closed``.
        stalls: Current run of dropped frames.

    Connections compare and hash by identity.

    """

    client_id: ClientID = field(default_factory=_new_client_id)
    queue_size: int = 256
    stall_limit: int = 32
    state: ConnectionState = "open"
    stalls: int = 0
    queue: asyncio.Queue[object] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # One slot past queue_size is reserved for the close marker.
        self.queue = asyncio.Queue(maxsize=self.queue_size + 1)

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    def send(self, frame: str) -> None:
        """Queue one frame for the client.

        Raises:
            DeliveryError: If the connection is not open, or it has stalled
                for ``stall_limit`` consecutive frames.

        """
        if not self.is_open:
            msg = f"connection is {self.state}"
            raise DeliveryError(msg)

        if self.queue.qsize() >= self.queue_size:
            self._drop_oldest()
            self.stalls += 1
            if self.stalls >= self.stall_limit:
                msg = f"client stalled for {self.stalls} frames"
                raise DeliveryError(msg)
        else:
            self.stalls = 0
        self.queue.put_nowait(frame)

    def close(self) -> None:
        """Stop accepting frames; the stream ends after the queued ones."""
        if self.state != "open":
            return
        self.state = "closing"
        self._enqueue_close()

    def abort(self) -> None:
        """Mark the connection closed immediately."""
        if self.state == "closed":
            return
        already_closing = self.state == "closing"
        self.state = "closed"
        if not already_closing:
            self._enqueue_close()

    async def frames(self) -> AsyncIterator[str]:
        """Yield queued frames until the connection closes.

        Used as the body of the client's event stream.  Cancellation
        (client disconnect) ends the iteration quietly.

        """
        try:
            while True:
                item = await self.queue.get()
                if item is _CLOSE:
                    return
                yield item  # type: ignore[misc]
        except (asyncio.CancelledError, GeneratorExit):
            return
        finally:
            self.state = "closed"

    def _enqueue_close(self) -> None:
        self.queue.put_nowait(_CLOSE)

    def _drop_oldest(self) -> None:
        try:
            self.queue.get_nowait()
        except asyncio.QueueEmpty:
            pass


class BroadcastHub:
    """Owns the set of open connections and fans messages out to them.

    ``broadcast`` copies the connection set under the lock and sends
    outside it, so clients may connect or disconnect mid-broadcast: a late
    joiner does not get that call's message and a leaver does not fault it.

    Thread-safe: the connection set is protected by a lock, held only for
    mutation and snapshot copies.

    """

    def __init__(self, collector: StackCollector | None = None) -> None:
        self._connections: set[ClientConnection] = set()
        self._lock = threading.Lock()
        self._collector = collector

    @property
    def connection_count(self) -> int:
        """Number of registered connections."""
        with self._lock:
            return len(self._connections)

    def connections(self) -> frozenset[ClientConnection]:
        """Snapshot of the registered connections."""
        with self._lock:
            return frozenset(self._connections)

    def register(self, conn: ClientConnection) -> None:
        """Add a connection.  Registering twice is a no-op."""
        with self._lock:
            self._connections.add(conn)

    def unregister(self, conn: ClientConnection) -> None:
        """Remove a connection.  Unknown connections are ignored."""
        with self._lock:
            self._connections.discard(conn)

    def send(self, conn: ClientConnection, message: OutboundMessage) -> bool:
        """Deliver *message* to a single connection.

        Returns True on success.  On failure the connection is closed and
        unregistered; nothing is raised.

        """
        return self._deliver(conn, encode(message), message.type)

    async def broadcast(self, message: OutboundMessage) -> int:
        """Deliver *message* to every connection open when the call starts.

        Never raises for per-connection failures.

        Returns:
            Number of connections the frame was delivered to.

        """
        frame = encode(message)
        targets = self.connections()

        delivered = 0
        for conn in targets:
            if self._deliver(conn, frame, message.type):
                delivered += 1

        if self._collector is not None:
            self._collector.record_broadcast(
                message.type,
                clients_notified=delivered,
                clients_failed=len(targets) - delivered,
                path=getattr(message, "path", ""),
            )
        return delivered

    def close_all(self) -> int:
        """Close and drop every connection.  Returns how many were closed."""
        with self._lock:
            conns = list(self._connections)
            self._connections.clear()
        for conn in conns:
            conn.close()
        return len(conns)

    def _deliver(self, conn: ClientConnection, frame: str, message_type: str) -> bool:
        try:
            conn.send(frame)
        except Exception as exc:
            self._fail(conn, message_type, exc)
            return False
        return True

    def _fail(self, conn: ClientConnection, message_type: str, exc: Exception) -> None:
        conn.abort()
        self.unregister(conn)
        print(
            f"  Delivery error: client {conn.client_id[:8]} ({message_type}): {exc}",
            file=sys.stderr,
        )
        if self._collector is not None:
            self._collector.record_delivery_failure(conn.client_id, message_type, str(exc))
