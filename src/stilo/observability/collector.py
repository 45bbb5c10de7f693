"""Stack collector — one sink for server, session, hub and build events.

Implements Pounce's ``LifecycleCollector`` protocol so it can be passed to
``App.run`` as the lifecycle collector.  Also provides typed recording
methods for the watch session, the broadcast hub and the build trigger.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

from typing import Any, Literal

from stilo.observability.events import (
    BuildFinished,
    ClientConnected,
    ClientDisconnected,
    DeliveryFailed,
    MessageBroadcast,
    TreeRebuilt,
    WatcherFailed,
    now_ns,
)
from stilo.observability.log import EventLog


class StackCollector:
    """Unified event collector.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Pounce LifecycleCollector protocol -----

    def record(self, event: Any) -> None:
        """Record a Pounce lifecycle event (frozen dataclass, stored as-is)."""
        self._log.append(event)

    # ----- Watch session -----

    def record_rebuild(
        self,
        trigger_path: str,
        *,
        change_kind: str = "snapshot",
        entries: int = 0,
        duration_ms: float = 0.0,
    ) -> None:
        self._log.append(
            TreeRebuilt(
                trigger_path=trigger_path,
                change_kind=change_kind,
                entries=entries,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_watcher_error(self, source: str, message: str) -> None:
        self._log.append(WatcherFailed(source=source, message=message, timestamp_ns=now_ns()))

    # ----- Broadcast hub -----

    def record_broadcast(
        self,
        message_type: str,
        *,
        clients_notified: int = 0,
        clients_failed: int = 0,
        path: str = "",
    ) -> None:
        self._log.append(
            MessageBroadcast(
                message_type=message_type,
                clients_notified=clients_notified,
                clients_failed=clients_failed,
                path=path,
                timestamp_ns=now_ns(),
            )
        )

    def record_delivery_failure(self, client_id: str, message_type: str, reason: str) -> None:
        self._log.append(
            DeliveryFailed(
                client_id=client_id,
                message_type=message_type,
                reason=reason,
                timestamp_ns=now_ns(),
            )
        )

    def record_connect(self, client_id: str) -> None:
        self._log.append(ClientConnected(client_id=client_id, timestamp_ns=now_ns()))

    def record_disconnect(self, client_id: str) -> None:
        self._log.append(ClientDisconnected(client_id=client_id, timestamp_ns=now_ns()))

    # ----- Build trigger -----

    def record_build(
        self,
        source: str,
        *,
        outcome: Literal["success", "failure"],
        returncode: int | None = None,
        duration_ms: float = 0.0,
    ) -> None:
        """Record the outcome of one stylesheet build."""
        self._log.append(
            BuildFinished(
                source=source,
                outcome=outcome,
                returncode=returncode,
                duration_ms=duration_ms,
                timestamp_ns=now_ns(),
            )
        )
