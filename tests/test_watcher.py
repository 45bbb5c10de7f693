"""Tests for stilo.content.watcher — change classification and SourceWatcher."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from watchfiles import Change

from stilo.content.watcher import ChangeEvent, SourceWatcher, classify_change, only_paths
from stilo.observability.collector import StackCollector
from stilo.observability.events import WatcherFailed


class TestChangeEvent:
    def test_frozen(self) -> None:
        event = ChangeEvent(subject="a.html", kind="file-added", path=Path("/r/a.html"))
        with pytest.raises(AttributeError):
            event.kind = "file-removed"  # type: ignore[misc]

    def test_is_modification(self) -> None:
        changed = ChangeEvent(subject="a.html", kind="file-changed", path=Path("/r/a.html"))
        added = ChangeEvent(subject="a.html", kind="file-added", path=Path("/r/a.html"))
        assert changed.is_modification
        assert not added.is_modification


class TestClassifyChange:
    def test_file_added(self, tmp_path: Path) -> None:
        target = tmp_path / "notes" / "a.html"
        target.parent.mkdir()
        target.write_text("<p>a</p>")

        event = classify_change(Change.added, target, tmp_path)
        assert event == ChangeEvent(subject="notes/a.html", kind="file-added", path=target)

    def test_dir_added(self, tmp_path: Path) -> None:
        target = tmp_path / "notes"
        target.mkdir()

        event = classify_change(Change.added, target, tmp_path)
        assert event is not None
        assert event.kind == "dir-added"
        assert event.subject == "notes"

    def test_file_changed(self, tmp_path: Path) -> None:
        target = tmp_path / "a.html"
        target.write_text("x")

        event = classify_change(Change.modified, target, tmp_path)
        assert event is not None
        assert event.kind == "file-changed"

    def test_dir_modified_ignored(self, tmp_path: Path) -> None:
        target = tmp_path / "notes"
        target.mkdir()
        assert classify_change(Change.modified, target, tmp_path) is None

    def test_file_removed(self, tmp_path: Path) -> None:
        event = classify_change(Change.deleted, tmp_path / "a.html", tmp_path)
        assert event is not None
        assert event.kind == "file-removed"
        assert event.subject == "a.html"

    def test_dir_removed_uses_known_dirs(self, tmp_path: Path) -> None:
        event = classify_change(
            Change.deleted, tmp_path / "notes", tmp_path, known_dirs=frozenset({"notes"}),
        )
        assert event is not None
        assert event.kind == "dir-removed"

    def test_outside_root_ignored(self, tmp_path: Path) -> None:
        root = tmp_path / "samples"
        root.mkdir()
        outside = tmp_path / "other.html"
        outside.write_text("x")
        assert classify_change(Change.added, outside, root) is None

    def test_sibling_with_common_prefix_ignored(self, tmp_path: Path) -> None:
        root = tmp_path / "samples"
        sibling = tmp_path / "samples-old" / "a.html"
        assert classify_change(Change.deleted, sibling, root) is None

    def test_root_itself_ignored(self, tmp_path: Path) -> None:
        assert classify_change(Change.modified, tmp_path, tmp_path) is None

    def test_dot_paths_ignored(self, tmp_path: Path) -> None:
        hidden = tmp_path / ".cache" / "a.html"
        hidden.parent.mkdir()
        hidden.write_text("x")
        assert classify_change(Change.added, hidden, tmp_path) is None
        assert classify_change(Change.deleted, tmp_path / ".DS_Store", tmp_path) is None


class TestOnlyPaths:
    def test_accepts_listed_paths(self, tmp_path: Path) -> None:
        style = tmp_path / "src" / "style.scss"
        accept = only_paths([style])
        assert accept(Change.modified, str(style))
        assert not accept(Change.modified, str(tmp_path / "src" / "other.scss"))


class TestSourceWatcher:
    def test_initial_state(self, tmp_path: Path) -> None:
        watcher = SourceWatcher([tmp_path], name="samples")
        assert watcher.name == "samples"
        assert watcher.paths == (tmp_path,)
        assert not watcher.is_running

    @pytest.mark.asyncio
    async def test_nothing_to_watch_finishes(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        watcher = SourceWatcher([tmp_path / "missing"], name="samples")
        seen = [item async for item in watcher.changes()]
        assert seen == []
        assert "nothing to watch" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_stop_before_iteration_ends_cleanly(self, tmp_path: Path) -> None:
        watcher = SourceWatcher([tmp_path], name="samples", debounce_ms=10)
        watcher.stop()
        seen = await asyncio.wait_for(_collect(watcher), timeout=5)
        assert seen == []
        assert not watcher.is_running

    @pytest.mark.asyncio
    async def test_detects_new_file(self, tmp_path: Path) -> None:
        watcher = SourceWatcher([tmp_path], name="samples", debounce_ms=10)

        async def _first() -> tuple[Change, Path]:
            async for item in watcher.changes():
                return item
            raise AssertionError("watcher ended without changes")

        task = asyncio.create_task(_first())
        await asyncio.sleep(0.3)
        (tmp_path / "a.html").write_text("x")
        try:
            change, path = await asyncio.wait_for(task, timeout=5)
        finally:
            watcher.stop()
        assert path == tmp_path / "a.html"
        assert change in (Change.added, Change.modified)

    def test_report_records_watcher_error(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        from stilo._errors import WatcherError

        collector = StackCollector()
        watcher = SourceWatcher([tmp_path], name="styles", collector=collector)
        watcher._report(WatcherError("styles failed: boom"))

        assert "Watcher error: styles failed: boom" in capsys.readouterr().err
        (event,) = collector.log.query(event_type=WatcherFailed)
        assert event.source == "styles"


async def _collect(watcher: SourceWatcher) -> list[tuple[Change, Path]]:
    return [item async for item in watcher.changes()]
