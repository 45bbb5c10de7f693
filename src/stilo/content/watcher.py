"""File watcher — observes the samples tree and the stylesheet sources.

``SourceWatcher`` wraps ``watchfiles.awatch`` and yields raw
``(Change, Path)`` pairs on the event loop.  ``classify_change`` maps those
raw pairs onto the closed set of change kinds the watch session reacts to:

- file added / modified / removed
- directory added / removed

Watcher-level failures never become a ``ChangeEvent``.  They are reported
as a ``WatcherError`` diagnostic and the watch ends without a restart.
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from watchfiles import Change, DefaultFilter, awatch

from stilo._errors import WatcherError
from stilo.content.paths import is_hidden, normalize

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable

    from stilo._types import CanonicalPath, ChangeKind
    from stilo.observability.collector import StackCollector


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A classified filesystem mutation.

    Attributes:
        subject: Canonical path of the affected node.
        kind: One of the five change kinds.
        path: Absolute path reported by the watch backend.

    """

    subject: CanonicalPath
    kind: ChangeKind
    path: Path

    @property
    def is_modification(self) -> bool:
        return self.kind == "file-changed"


def classify_change(
    change: Change,
    path: Path,
    root: Path,
    *,
    known_dirs: frozenset[CanonicalPath] = frozenset(),
) -> ChangeEvent | None:
    """Classify one raw watch event under *root*.

    Deleted nodes can no longer be inspected, so *known_dirs* (the
    directories of the last tree snapshot) decides whether a deletion
    removed a directory or a file.

    Returns None for paths outside *root*, the root itself, dot-paths, and
    directory modifications (a child changed; the child reports it).

    """
    try:
        path.relative_to(root)
    except ValueError:
        return None

    subject = normalize(path, root)
    if not subject or is_hidden(subject):
        return None

    kind: ChangeKind
    if change == Change.added:
        kind = "dir-added" if path.is_dir() else "file-added"
    elif change == Change.modified:
        if path.is_dir():
            return None
        kind = "file-changed"
    elif change == Change.deleted:
        kind = "dir-removed" if subject in known_dirs else "file-removed"
    else:
        return None

    return ChangeEvent(subject=subject, kind=kind, path=path)


def only_paths(paths: Iterable[Path]) -> Callable[[Change, str], bool]:
    """Build a watch filter that accepts exactly the given files."""
    wanted = frozenset(str(p) for p in paths)

    def _filter(change: Change, path: str) -> bool:
        return path in wanted

    return _filter


class SourceWatcher:
    """Watches paths for changes on the running event loop.

    Uses ``watchfiles.awatch`` with a stop event so ``stop()`` ends the
    iteration cleanly.  Missing watch roots are skipped when iteration
    starts.  A backend failure is logged and recorded once, then the
    iterator finishes; the watch is not restarted.

    Args:
        paths: Directories (or files) to watch.
        name: Label used in diagnostics.
        debounce_ms: Window used by watchfiles to coalesce bursts.
        watch_filter: Optional ``(Change, path) -> bool`` filter; defaults
            to watchfiles' ``DefaultFilter``.
        collector: Optional observability collector.

    """

    def __init__(
        self,
        paths: Iterable[Path],
        *,
        name: str = "watcher",
        debounce_ms: int = 300,
        watch_filter: Callable[[Change, str], bool] | None = None,
        collector: StackCollector | None = None,
    ) -> None:
        self._paths = tuple(paths)
        self._name = name
        self._debounce_ms = debounce_ms
        self._filter = watch_filter if watch_filter is not None else DefaultFilter()
        self._collector = collector
        self._stop_event = asyncio.Event()
        self._running = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def paths(self) -> tuple[Path, ...]:
        return self._paths

    @property
    def is_running(self) -> bool:
        """Whether ``changes()`` is currently iterating the backend."""
        return self._running

    def stop(self) -> None:
        """Signal the backend to stop; the pending iteration finishes."""
        self._stop_event.set()

    async def changes(self) -> AsyncIterator[tuple[Change, Path]]:
        """Yield ``(Change, Path)`` pairs until stopped or the backend fails."""
        existing = [p for p in self._paths if p.exists()]
        if not existing:
            print(f"  {self._name}: nothing to watch", file=sys.stderr)
            return

        self._running = True
        try:
            async for batch in awatch(
                *existing,
                watch_filter=self._filter,
                stop_event=self._stop_event,
                debounce=self._debounce_ms,
                step=50,
            ):
                for change, path_str in sorted(batch, key=lambda c: c[1]):
                    yield change, Path(path_str)
        except Exception as exc:
            self._report(WatcherError(f"{self._name} failed: {exc}"))
        finally:
            self._running = False

    def _report(self, error: WatcherError) -> None:
        print(f"  Watcher error: {error}", file=sys.stderr)
        if self._collector is not None:
            self._collector.record_watcher_error(self._name, str(error))
