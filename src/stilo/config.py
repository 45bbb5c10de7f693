"""Stilo configuration.

StiloConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class StiloConfig:
    """Configuration for a Stilo dev server.

    Attributes:
        root: Project root (contains samples/, public/, README.md, ...).
              Always resolved to a real absolute path on construction.
        host: Bind address.
        port: Bind port.
        samples_dir: Directory of sample documents exposed as the file tree.
        public_dir: Directory served at ``/`` (index.html, compiled style.css).
        fonts_dir: Directory served at ``/fonts``.
        readme: Project README, listed first in every tree snapshot.
        extensions: File suffixes included in the tree.
        style_sources: Stylesheet sources that trigger a rebuild, relative to root.
        build_command: Shell command that compiles the stylesheet.
        debounce_ms: Watcher debounce window in milliseconds.
        queue_size: Outbound frames buffered per client before dropping the oldest.
        stall_limit: Consecutive dropped frames before a client is disconnected.
        compile_on_start: Run the stylesheet build once at startup.

    """

    root: Path = field(default_factory=Path.cwd)
    host: str = "127.0.0.1"
    port: int = 3000
    samples_dir: str = "samples"
    public_dir: str = "public"
    fonts_dir: str = "fonts"
    readme: str = "README.md"
    extensions: tuple[str, ...] = (".html",)
    style_sources: tuple[str, ...] = ("src/style.scss", "src/fonts.scss")
    build_command: str = "npx sass src/style.scss public/style.css"
    debounce_ms: int = 300
    queue_size: int = 256
    stall_limit: int = 32
    compile_on_start: bool = True

    def __post_init__(self) -> None:
        # watchfiles reports real absolute paths; keep root comparable with them.
        object.__setattr__(self, "root", Path(self.root).resolve())

    @property
    def samples_path(self) -> Path:
        """Absolute path to the watched samples directory."""
        return self.root / self.samples_dir

    @property
    def public_path(self) -> Path:
        """Absolute path to the public assets directory."""
        return self.root / self.public_dir

    @property
    def fonts_path(self) -> Path:
        """Absolute path to the fonts directory."""
        return self.root / self.fonts_dir

    @property
    def readme_path(self) -> Path:
        """Absolute path to the project README."""
        return self.root / self.readme

    @property
    def style_paths(self) -> tuple[Path, ...]:
        """Absolute paths of the stylesheet sources."""
        return tuple(self.root / source for source in self.style_sources)
