"""Shared test fixtures for stilo."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from stilo.config import StiloConfig
from stilo.observability import EventLog, StackCollector
from stilo.reactive.broadcaster import BroadcastHub, ClientConnection


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Create a minimal project layout.

    Returns the project root with an empty samples/ directory, a public/
    index page, a README and the stylesheet sources.
    """
    (tmp_path / "samples").mkdir()

    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<!DOCTYPE html>\n<html><body>viewer</body></html>\n")
    (public / "style.css").write_text("body { margin: 0; }\n")

    (tmp_path / "README.md").write_text("# Stilo\n\nSample stylesheet.\n")

    src = tmp_path / "src"
    src.mkdir()
    (src / "style.scss").write_text("body { margin: 0; }\n")
    (src / "fonts.scss").write_text("")

    return tmp_path


@pytest.fixture
def config(project: Path) -> StiloConfig:
    return StiloConfig(root=project, compile_on_start=False)


@pytest.fixture
def collector() -> StackCollector:
    return StackCollector(EventLog())


@pytest.fixture
def hub(collector: StackCollector) -> BroadcastHub:
    return BroadcastHub(collector=collector)


class FailingConnection(ClientConnection):
    """A connection whose transport raises on every send."""

    def send(self, frame: str) -> None:
        msg = "transport closed"
        raise OSError(msg)


def drain(conn: ClientConnection) -> list[dict[str, Any]]:
    """Pop every queued frame of *conn* and decode it."""
    frames: list[dict[str, Any]] = []
    while not conn.queue.empty():
        item = conn.queue.get_nowait()
        if isinstance(item, str):
            frames.append(json.loads(item))
    return frames
