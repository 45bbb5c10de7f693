"""Startup banner — mode-aware status output.

Prints a short startup banner with the watched paths and the push-channel
URL.  Colour is used only when stderr is a terminal and neither
``NO_COLOR`` nor ``TERM=dumb`` is set.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stilo.config import StiloConfig


# SGR codes used by the banner.
_SGR = {
    "bold": "1",
    "dim": "2",
    "green": "32",
    "yellow": "33",
    "cyan": "36",
}

_MODE_COLORS = {"dev": "green", "build": "yellow"}


def _color_enabled() -> bool:
    if os.environ.get("NO_COLOR") or os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(sys.stderr, "isatty", None)
    return bool(isatty and isatty())


def _paint(text: str, *styles: str, color: bool) -> str:
    """Wrap *text* in the SGR sequence for *styles* when colour is on."""
    if not color or not styles:
        return text
    codes = ";".join(_SGR[s] for s in styles)
    return f"\033[{codes}m{text}\033[0m"


def _link(url: str, *, color: bool) -> str:
    """OSC 8 hyperlink around *url*; plain text without colour."""
    if not color:
        return url
    return f"\033]8;;{url}\033\\{_paint(url, 'bold', 'cyan', color=True)}\033]8;;\033\\"


def format_banner(
    config: StiloConfig,
    mode: str,
    *,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
    color: bool = False,
) -> str:
    """Build the banner text without printing it."""
    from stilo import __version__
    from stilo.content.router import EVENTS_ENDPOINT

    def dim(text: str) -> str:
        return _paint(text, "dim", color=color)

    badge = _paint(f"[{mode}]", _MODE_COLORS.get(mode, "dim"), color=color)

    lines = [
        "",
        f"  {_paint('Stilo', 'bold', color=color)} {dim(f'v{__version__}')}  {badge}",
        f"  {dim('─' * 43)}",
    ]

    if mode == "dev":
        timing = f" {dim(f'in {load_ms:.0f}ms')}" if load_ms > 0 else ""
        url = f"http://{config.host}:{config.port}"
        lines += [
            f"  {dim('├─')} samples: {dim(str(config.samples_path))}{timing}",
            f"  {dim('├─')} styles: {dim(', '.join(config.style_sources))}",
            f"  {dim('└─')} {_paint('live', 'green', color=color)} "
            f"on {dim(EVENTS_ENDPOINT)} (SSE)",
            "",
            f"  {_link(url, color=color)}",
            "",
            f"  {dim('Watching for changes...')}",
        ]
    else:
        lines.append(f"  {dim('└─')} command: {dim(config.build_command)}")

    if warnings:
        lines.append("")
        lines += [f"  {_paint('!', 'yellow', color=color)} {w}" for w in warnings]

    lines.append("")
    return "\n".join(lines)


def missing_style_sources(config: StiloConfig) -> list[str]:
    """Warning lines for stylesheet sources that do not exist."""
    return [
        f"missing stylesheet source: {source}"
        for source, path in zip(config.style_sources, config.style_paths, strict=True)
        if not path.is_file()
    ]


def print_banner(
    config: StiloConfig,
    mode: str,
    *,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the Stilo startup banner to stderr.

    Args:
        config: Resolved StiloConfig.
        mode: ``"dev"`` or ``"build"``.
        load_ms: Time spent wiring the server in milliseconds.
        warnings: Warning lines; defaults to the missing stylesheet sources.

    """
    if warnings is None:
        warnings = missing_style_sources(config)
    text = format_banner(
        config, mode, load_ms=load_ms, warnings=warnings, color=_color_enabled(),
    )
    print(text, file=sys.stderr)
