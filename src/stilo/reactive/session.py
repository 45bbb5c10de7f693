"""Watch session — keeps connected browsers in sync with the samples tree.

The session owns the authoritative tree snapshot.  Every qualifying
filesystem change rebuilds the whole snapshot and broadcasts it; a file
modification additionally broadcasts the changed path so the browser can
reload that document.

Transitions:
    file/dir added or removed -> rebuild -> ``fileTreeUpdate``
    file changed              -> rebuild -> ``fileTreeUpdate``, then ``fileChanged``
    client connects           -> rebuild -> ``fileTreeUpdate`` + ack to that client
    watcher error             -> logged by the watcher; session stays idle

Rebuilding from scratch keeps every snapshot self-consistent, so browsers
never merge partial updates.  Changes are consumed one at a time from the
watcher, so rebuild cycles of a single session never overlap.
"""

from __future__ import annotations

import sys
import time
from typing import TYPE_CHECKING, Literal

from stilo.content.tree import directory_paths, snapshot
from stilo.content.watcher import classify_change
from stilo.reactive.messages import ConnectionAck, FileChanged, FileTreeUpdate

if TYPE_CHECKING:
    from pathlib import Path

    from watchfiles import Change

    from stilo._types import CanonicalPath
    from stilo.config import StiloConfig
    from stilo.content.tree import TreeEntry
    from stilo.content.watcher import ChangeEvent, SourceWatcher
    from stilo.observability.collector import StackCollector
    from stilo.reactive.broadcaster import BroadcastHub, ClientConnection


class WatchSession:
    """Owns one watched subtree and its subscribers.

    Args:
        config: Server configuration (samples root, extensions).
        hub: Broadcast hub holding the connected clients.
        collector: Optional observability collector.

    """

    def __init__(
        self,
        config: StiloConfig,
        hub: BroadcastHub,
        *,
        collector: StackCollector | None = None,
    ) -> None:
        self._config = config
        self._hub = hub
        self._collector = collector
        self._snapshot: tuple[TreeEntry, ...] = ()
        self._dirs: frozenset[CanonicalPath] = frozenset()
        self._state: Literal["idle", "rebuilding"] = "idle"
        self._watcher: SourceWatcher | None = None
        self._closed = False

    @property
    def root(self) -> Path:
        """The watched samples directory."""
        return self._config.samples_path

    @property
    def hub(self) -> BroadcastHub:
        return self._hub

    @property
    def state(self) -> Literal["idle", "rebuilding"]:
        return self._state

    @property
    def snapshot(self) -> tuple[TreeEntry, ...]:
        """The most recent snapshot (README entry first)."""
        return self._snapshot

    @property
    def is_closed(self) -> bool:
        return self._closed

    def ensure_root(self) -> None:
        """Create the samples directory if it does not exist yet."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            print(f"  Cannot create {self.root}: {exc}", file=sys.stderr)

    def directories(self) -> frozenset[CanonicalPath]:
        """Canonical paths of the directories in the current snapshot."""
        return self._dirs

    def rebuild(self, trigger: ChangeEvent | None = None) -> tuple[TreeEntry, ...]:
        """Rebuild the snapshot synchronously and store it."""
        self._state = "rebuilding"
        t0 = time.perf_counter()
        try:
            entries = snapshot(self.root, self._config.extensions)
        finally:
            self._state = "idle"
        self._snapshot = entries
        self._dirs = directory_paths(entries)

        if self._collector is not None:
            self._collector.record_rebuild(
                trigger.subject if trigger is not None else "",
                change_kind=trigger.kind if trigger is not None else "snapshot",
                entries=len(entries),
                duration_ms=(time.perf_counter() - t0) * 1000,
            )
        return entries

    async def handle_change(self, event: ChangeEvent) -> None:
        """Rebuild and broadcast for one classified change.

        For a modification both messages reach every open connection, tree
        first, before this returns.

        """
        print(f"  {_describe(event)}", file=sys.stderr)
        entries = self.rebuild(event)
        await self._hub.broadcast(FileTreeUpdate(entries))
        if event.is_modification:
            await self._hub.broadcast(FileChanged(event.subject))

    async def handle_raw(self, change: Change, path: Path) -> None:
        """Classify a raw watcher event and handle it if it qualifies."""
        event = classify_change(change, path, self.root, known_dirs=self._dirs)
        if event is not None:
            await self.handle_change(event)

    def connect(self, conn: ClientConnection) -> bool:
        """Greet a new client and subscribe it to future broadcasts.

        The client receives the current tree and then the connection
        acknowledgment; no other client sees either frame.  Returns False
        if the client failed before it could be registered.

        """
        if self._closed:
            conn.close()
            return False

        self.ensure_root()
        entries = self.rebuild()
        if not self._hub.send(conn, FileTreeUpdate(entries)):
            return False
        if not self._hub.send(conn, ConnectionAck()):
            return False
        self._hub.register(conn)

        print("  Client connected", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_connect(conn.client_id)
        return True

    def disconnect(self, conn: ClientConnection) -> None:
        """Drop a client whose stream ended."""
        conn.abort()
        self._hub.unregister(conn)
        print("  Client disconnected", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_disconnect(conn.client_id)

    async def run(self, watcher: SourceWatcher) -> None:
        """Consume *watcher* until it stops, handling each change in turn.

        A failure while handling one change is reported and the watch
        carries on with the next.

        """
        self._watcher = watcher
        self.rebuild()
        async for change, path in watcher.changes():
            try:
                await self.handle_raw(change, path)
            except Exception as exc:
                print(f"  Session error: {path}: {exc}", file=sys.stderr)

    def shutdown(self) -> None:
        """Stop the watch and close every connection.

        Connections drain the frames already queued before their streams
        end.  Calling this twice is harmless.

        """
        if self._closed:
            return
        self._closed = True
        if self._watcher is not None:
            self._watcher.stop()
        closed = self._hub.close_all()
        if closed:
            print(f"  Closed {closed} client connection(s)", file=sys.stderr)


_DESCRIPTIONS: dict[str, str] = {
    "file-added": "File {} has been added",
    "file-changed": "File {} has been changed",
    "file-removed": "File {} has been removed",
    "dir-added": "Directory {} has been added",
    "dir-removed": "Directory {} has been removed",
}


def _describe(event: ChangeEvent) -> str:
    return _DESCRIPTIONS[event.kind].format(event.subject)
