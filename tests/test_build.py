"""Tests for stilo.reactive.build — stylesheet rebuild and styleChanged."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from watchfiles import Change

from stilo.observability import StackCollector
from stilo.observability.events import BuildFinished, MessageBroadcast
from stilo.reactive.broadcaster import BroadcastHub, ClientConnection
from stilo.reactive.build import BuildTrigger
from tests.conftest import drain

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell commands")


def _trigger(
    command: str, hub: BroadcastHub, cwd: Path, collector: StackCollector,
) -> BuildTrigger:
    return BuildTrigger(command, hub, cwd=cwd, collector=collector)


class TestBuild:
    @pytest.mark.asyncio
    async def test_success(
        self, tmp_path: Path, hub: BroadcastHub, collector: StackCollector,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        builder = _trigger("exit 0", hub, tmp_path, collector)
        assert await builder.build("src/style.scss")
        assert "SCSS compiled successfully" in capsys.readouterr().err

        (event,) = collector.log.query(event_type=BuildFinished)
        assert event.outcome == "success"
        assert event.returncode == 0
        assert event.source == "src/style.scss"

    @pytest.mark.asyncio
    async def test_failure_reported(
        self, tmp_path: Path, hub: BroadcastHub, collector: StackCollector,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        builder = _trigger("exit 3", hub, tmp_path, collector)
        assert not await builder.build()
        assert "Failed to compile SCSS" in capsys.readouterr().err

        (event,) = collector.log.query(event_type=BuildFinished)
        assert event.outcome == "failure"
        assert event.returncode == 3

    @pytest.mark.asyncio
    async def test_runs_in_cwd(
        self, tmp_path: Path, hub: BroadcastHub, collector: StackCollector,
    ) -> None:
        builder = _trigger("echo body > out.css", hub, tmp_path, collector)
        assert await builder.build()
        assert (tmp_path / "out.css").read_text().strip() == "body"

    @pytest.mark.asyncio
    async def test_missing_cwd_is_failure(
        self, tmp_path: Path, hub: BroadcastHub, collector: StackCollector,
    ) -> None:
        builder = _trigger("exit 0", hub, tmp_path / "gone", collector)
        assert not await builder.build()
        (event,) = collector.log.query(event_type=BuildFinished)
        assert event.returncode is None


class TestOnSourceChanged:
    @pytest.mark.asyncio
    async def test_success_broadcasts_style_changed(
        self, tmp_path: Path, hub: BroadcastHub, collector: StackCollector,
    ) -> None:
        conn = ClientConnection()
        hub.register(conn)
        builder = _trigger("exit 0", hub, tmp_path, collector)

        assert await builder.on_source_changed(tmp_path / "src" / "style.scss")
        assert drain(conn) == [{"type": "styleChanged"}]

    @pytest.mark.asyncio
    async def test_failure_broadcasts_nothing(
        self, tmp_path: Path, hub: BroadcastHub, collector: StackCollector,
    ) -> None:
        conn = ClientConnection()
        hub.register(conn)
        builder = _trigger("exit 1", hub, tmp_path, collector)

        assert not await builder.on_source_changed("src/style.scss")
        assert drain(conn) == []
        assert collector.log.query(event_type=MessageBroadcast) == []

    @pytest.mark.asyncio
    async def test_logs_changed_source(
        self, tmp_path: Path, hub: BroadcastHub, collector: StackCollector,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        builder = _trigger("exit 0", hub, tmp_path, collector)
        await builder.on_source_changed("src/fonts.scss")
        assert "Style file src/fonts.scss has been changed" in capsys.readouterr().err


class _FakeWatcher:
    def __init__(self, paths: list[Path]) -> None:
        self._paths = paths

    async def changes(self):  # noqa: ANN201
        for path in self._paths:
            yield Change.modified, path


class TestRun:
    @pytest.mark.asyncio
    async def test_one_build_per_change(
        self, tmp_path: Path, hub: BroadcastHub, collector: StackCollector,
    ) -> None:
        conn = ClientConnection()
        hub.register(conn)
        builder = _trigger("exit 0", hub, tmp_path, collector)
        watcher = _FakeWatcher([tmp_path / "a.scss", tmp_path / "b.scss"])

        await builder.run(watcher)  # type: ignore[arg-type]

        assert len(collector.log.query(event_type=BuildFinished)) == 2
        assert drain(conn) == [{"type": "styleChanged"}, {"type": "styleChanged"}]
