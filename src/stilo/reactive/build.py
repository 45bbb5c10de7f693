"""Build trigger — recompiles the stylesheet when a source changes.

The external compiler runs as an asyncio subprocess, so tree and file
broadcasts keep flowing while it works.  ``styleChanged`` is broadcast only
after the build returned successfully; a failed build is logged and
nothing is pushed.  Builds never overlap and are never retried.
"""

from __future__ import annotations

import asyncio
import sys
import time
from typing import TYPE_CHECKING

from stilo._errors import BuildError
from stilo.reactive.messages import StyleChanged

if TYPE_CHECKING:
    from pathlib import Path

    from stilo.content.watcher import SourceWatcher
    from stilo.observability.collector import StackCollector
    from stilo.reactive.broadcaster import BroadcastHub


class BuildTrigger:
    """Runs the stylesheet build and notifies clients on success.

    Args:
        command: Shell command that compiles the stylesheet.
        hub: Broadcast hub to notify.
        cwd: Working directory for the command (the project root).
        collector: Optional observability collector.

    """

    def __init__(
        self,
        command: str,
        hub: BroadcastHub,
        *,
        cwd: Path,
        collector: StackCollector | None = None,
    ) -> None:
        self._command = command
        self._hub = hub
        self._cwd = cwd
        self._collector = collector
        self._lock = asyncio.Lock()

    @property
    def command(self) -> str:
        return self._command

    async def build(self, source: str = "") -> bool:
        """Run the build once.  Returns True on success, never raises BuildError."""
        async with self._lock:
            t0 = time.perf_counter()
            returncode: int | None = None
            try:
                returncode = await self._run()
                if returncode != 0:
                    msg = f"build exited with status {returncode}"
                    raise BuildError(msg)
            except (BuildError, OSError) as exc:
                print(f"  Failed to compile SCSS: {exc}", file=sys.stderr)
                self._record(source, "failure", returncode, t0)
                return False

            print("  SCSS compiled successfully", file=sys.stderr)
            self._record(source, "success", returncode, t0)
            return True

    async def on_source_changed(self, path: Path | str) -> bool:
        """Rebuild after *path* changed; broadcast ``styleChanged`` on success."""
        print(f"  Style file {path} has been changed", file=sys.stderr)
        if not await self.build(str(path)):
            return False
        await self._hub.broadcast(StyleChanged())
        return True

    async def run(self, watcher: SourceWatcher) -> None:
        """Consume a watcher over the stylesheet sources until it stops."""
        async for _change, path in watcher.changes():
            await self.on_source_changed(path)

    async def _run(self) -> int:
        proc = await asyncio.create_subprocess_shell(self._command, cwd=self._cwd)
        try:
            return await proc.wait()
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

    def _record(self, source: str, outcome: str, returncode: int | None, t0: float) -> None:
        if self._collector is None:
            return
        self._collector.record_build(
            source,
            outcome=outcome,  # type: ignore[arg-type]
            returncode=returncode,
            duration_ms=(time.perf_counter() - t0) * 1000,
        )
