"""Stilo application — wires the dev server together.

``create_app`` builds a Chirp App with the content routes, the push channel
and the watcher lifecycle hooks.  ``dev`` runs it under Pounce; ``build``
compiles the stylesheet once and exits.
"""

from __future__ import annotations

import asyncio
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from stilo.config import StiloConfig
from stilo.config_loader import load_config

if TYPE_CHECKING:
    from chirp import App

    from stilo.observability.collector import StackCollector
    from stilo.reactive.broadcaster import BroadcastHub
    from stilo.reactive.build import BuildTrigger
    from stilo.reactive.session import WatchSession


@dataclass(slots=True)
class DevServer:
    """Everything ``create_app`` wired, for the CLI and for tests."""

    app: App
    config: StiloConfig
    hub: BroadcastHub
    session: WatchSession
    builder: BuildTrigger
    collector: StackCollector


def _create_chirp_app(config: StiloConfig) -> App:
    """Create a Chirp App bound to the configured host and port."""
    from chirp import App, AppConfig

    app_config = AppConfig(
        template_dir=config.public_path,
        host=config.host,
        port=config.port,
    )
    return App(config=app_config)


def _mount_static_files(app: App, config: StiloConfig) -> None:
    """Serve ``public/`` at ``/`` and ``fonts/`` at ``/fonts``.

    Missing directories are skipped.  Compiled CSS must never be cached by
    the browser, so every asset is served with ``no-cache``.

    """
    from chirp.middleware import StaticFiles

    if config.fonts_path.is_dir():
        app.add_middleware(
            StaticFiles(directory=config.fonts_path, prefix="/fonts", cache_control="no-cache")
        )
    if config.public_path.is_dir():
        app.add_middleware(
            StaticFiles(directory=config.public_path, prefix="/", cache_control="no-cache")
        )


def _start_watchers(server: DevServer) -> None:
    """Wire the watchers to the session and build trigger via lifecycle hooks.

    Flow:
        on_startup  -> optional initial build, spawn one task per watcher
        file change -> async iteration -> session / build trigger
        on_shutdown -> stop watchers, close connections, cancel tasks

    """
    from stilo.content.watcher import SourceWatcher, only_paths

    config = server.config
    tree_watcher = SourceWatcher(
        [config.samples_path],
        name="samples",
        debounce_ms=config.debounce_ms,
        collector=server.collector,
    )
    style_paths = config.style_paths
    style_watcher = SourceWatcher(
        sorted({p.parent for p in style_paths}),
        name="styles",
        debounce_ms=config.debounce_ms,
        watch_filter=only_paths(style_paths),
        collector=server.collector,
    )
    tasks: list[asyncio.Task[None]] = []

    @server.app.on_startup
    async def _start_watch_tasks() -> None:
        server.session.ensure_root()
        if config.compile_on_start:
            await server.builder.build()
        tasks.append(asyncio.create_task(server.session.run(tree_watcher)))
        tasks.append(asyncio.create_task(server.builder.run(style_watcher)))

    @server.app.on_shutdown
    async def _stop_watch_tasks() -> None:
        style_watcher.stop()
        server.session.shutdown()
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        tasks.clear()


def create_app(config: StiloConfig, *, watch: bool = True) -> DevServer:
    """Build the dev server for *config*.

    Args:
        config: Resolved configuration.
        watch: Register the watcher lifecycle hooks.  Tests that drive the
            session directly pass False.

    """
    from stilo.content.router import ContentRouter
    from stilo.observability import EventLog, StackCollector
    from stilo.reactive.broadcaster import BroadcastHub
    from stilo.reactive.build import BuildTrigger
    from stilo.reactive.session import WatchSession

    collector = StackCollector(EventLog())
    hub = BroadcastHub(collector=collector)
    session = WatchSession(config, hub, collector=collector)
    builder = BuildTrigger(config.build_command, hub, cwd=config.root, collector=collector)

    app = _create_chirp_app(config)
    ContentRouter(config, session, app).register_all(collector)
    _mount_static_files(app, config)

    server = DevServer(
        app=app,
        config=config,
        hub=hub,
        session=session,
        builder=builder,
        collector=collector,
    )
    if watch:
        _start_watchers(server)
    return server


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def dev(root: str | Path = ".", **kwargs: object) -> None:
    """Start the live-reload development server.

    Args:
        root: Project root directory.
        **kwargs: Override StiloConfig fields.

    """
    from stilo.banner import print_banner

    config = load_config(Path(root), **kwargs)
    t0 = time.perf_counter()
    server = create_app(config)
    load_ms = (time.perf_counter() - t0) * 1000

    print_banner(config, mode="dev", load_ms=load_ms)

    # Pounce lifecycle events land in the same EventLog as session events.
    server.app.run(host=config.host, port=config.port, lifecycle_collector=server.collector)


def build(root: str | Path = ".", **kwargs: object) -> bool:
    """Compile the stylesheet once.  Returns True on success."""
    from stilo.banner import print_banner
    from stilo.reactive.broadcaster import BroadcastHub
    from stilo.reactive.build import BuildTrigger

    config = load_config(Path(root), **kwargs)
    print_banner(config, mode="build")

    builder = BuildTrigger(config.build_command, BroadcastHub(), cwd=config.root)
    ok = asyncio.run(builder.build())
    if not ok:
        print("  Build failed", file=sys.stderr)
    return ok
