"""Content router — the HTTP surface of the dev server.

Registers the Chirp routes that expose the samples tree:

- ``/api/files``           tree snapshot as JSON (README entry first)
- ``/sample/README.md``    project README rendered to HTML
- ``/sample/{path}``       raw sample documents
- ``/``                    the viewer page from ``public/index.html``
- ``/__stilo/events``      push channel (SSE, one JSON frame per event)
- ``/__stilo/stats``       event log summary
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from stilo._errors import FilesystemError
from stilo.content.tree import build_tree, entries_to_json, with_readme

if TYPE_CHECKING:
    from pathlib import Path

    from chirp import App

    from stilo.config import StiloConfig
    from stilo.observability.collector import StackCollector
    from stilo.reactive.session import WatchSession


# Push-channel endpoint path
EVENTS_ENDPOINT = "/__stilo/events"
STATS_ENDPOINT = "/__stilo/stats"
FILES_ENDPOINT = "/api/files"

_README_PAGE = """\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Stilo - README</title>
    <link href="/style.css" rel="stylesheet">
    <style>
        .readme-content {{ max-width: 800px; margin: 0 auto; padding: 20px; }}
        .readme-content h1 {{ border-bottom: 2px solid #ddd; padding-bottom: 10px; }}
        .readme-content code {{ background: #f4f4f4; padding: 2px 5px; border-radius: 3px; }}
        .readme-content pre {{ background: #f8f8f8; padding: 15px; border-radius: 5px; overflow-x: auto; }}
        .readme-content pre code {{ background: transparent; padding: 0; }}
    </style>
</head>
<body>
    <div class="readme-content">
        {content}
    </div>
</body>
</html>
"""


def render_readme(markdown_text: str) -> str:
    """Render README markdown into the standalone README page."""
    from patitas import Markdown

    md = Markdown(plugins=["table"])
    return _README_PAGE.format(content=md(markdown_text))


def resolve_sample(samples_root: Path, relative: str) -> Path | None:
    """Resolve a request path inside the samples root.

    Returns None when the target is missing, not a file, or escapes the
    samples root.

    """
    root = samples_root.resolve()
    target = (root / relative).resolve()
    if not target.is_relative_to(root) or not target.is_file():
        return None
    return target


class ContentRouter:
    """Registers the dev-server routes on a Chirp app.

    Args:
        config: Server configuration.
        session: Watch session that owns the tree and the connected clients.
        app: Chirp App to register routes on (must not yet be frozen).

    """

    def __init__(self, config: StiloConfig, session: WatchSession, app: App) -> None:
        self._config = config
        self._session = session
        self._app = app

    def register_all(self, collector: StackCollector | None = None) -> None:
        """Register every route; the stats route only when a collector is given."""
        self.register_files_endpoint()
        self.register_readme()
        self.register_samples()
        self.register_index()
        self.register_events_endpoint()
        if collector is not None:
            self.register_stats_endpoint(collector)

    def register_files_endpoint(self) -> None:
        """Register ``GET /api/files``.

        Unlike the push channel, a filesystem failure here is reported to
        the caller as a 500.

        """
        from chirp import JSONResponse

        config = self._config
        session = self._session

        async def files_handler() -> Any:
            session.ensure_root()
            try:
                entries = with_readme(build_tree(config.samples_path, config.extensions))
            except FilesystemError as exc:
                print(f"  Tree error: {exc}", file=sys.stderr)
                return JSONResponse.from_value(
                    {"error": "Failed to read samples directory"}, status=500,
                )
            return JSONResponse.from_value(entries_to_json(entries))

        files_handler.__name__ = "stilo_files"
        self._app.route(FILES_ENDPOINT, name="stilo:files")(files_handler)

    def register_readme(self) -> None:
        """Register ``GET /sample/README.md`` (rendered from the project root)."""
        from chirp import Response

        readme_path = self._config.readme_path

        async def readme_handler() -> Any:
            if not readme_path.is_file():
                return Response(body="README not found", status=404)
            html = render_readme(readme_path.read_text(encoding="utf-8"))
            return Response(body=html)

        readme_handler.__name__ = "stilo_readme"
        self._app.route("/sample/README.md", name="stilo:readme")(readme_handler)

    def register_samples(self) -> None:
        """Register ``GET /sample/{path}`` for raw sample documents."""
        from chirp import FileResponse, Response

        samples_path = self._config.samples_path

        async def sample_handler(path: str) -> Any:
            target = resolve_sample(samples_path, path)
            if target is None:
                return Response(body="Sample not found", status=404)
            return FileResponse(path=target)

        sample_handler.__name__ = "stilo_sample"
        self._app.route("/sample/{path:path}", name="stilo:sample")(sample_handler)

    def register_index(self) -> None:
        """Register ``GET /`` serving ``public/index.html``."""
        from chirp import FileResponse, Response

        index_path = self._config.public_path / "index.html"

        async def index_handler() -> Any:
            if not index_path.is_file():
                return Response(body="index.html not found", status=404)
            return FileResponse(path=index_path)

        index_handler.__name__ = "stilo_index"
        self._app.route("/", name="stilo:index")(index_handler)

    def register_events_endpoint(self) -> None:
        """Register the ``/__stilo/events`` push channel.

        Each request opens one ``ClientConnection``: the session greets it
        with the current tree and the acknowledgment, then the stream
        relays every broadcast frame until the client goes away or the
        server shuts down.

        """
        from chirp import EventStream, SSEEvent

        from stilo.reactive.broadcaster import ClientConnection

        config = self._config
        session = self._session

        async def events_handler() -> Any:
            conn = ClientConnection(
                queue_size=config.queue_size,
                stall_limit=config.stall_limit,
            )
            # A refused connection is already closed; its stream ends at once.
            connected = session.connect(conn)

            async def generate():  # type: ignore[return]
                try:
                    async for frame in conn.frames():
                        yield SSEEvent(data=frame)
                finally:
                    if connected:
                        session.disconnect(conn)

            return EventStream(generate())

        events_handler.__name__ = "stilo_events"
        self._app.route(EVENTS_ENDPOINT, name="stilo:events")(events_handler)

    def register_stats_endpoint(self, collector: StackCollector) -> None:
        """Register the ``/__stilo/stats`` JSON endpoint."""
        from chirp import JSONResponse

        hub = self._session.hub

        async def stats_handler() -> Any:
            return JSONResponse.from_value(
                {"clients": hub.connection_count, "event_log": collector.log.stats()},
            )

        stats_handler.__name__ = "stilo_stats"
        self._app.route(STATS_ENDPOINT, name="stilo:stats")(stats_handler)
