"""Path normalization — platform paths to canonical forward-slash paths.

Every path that leaves the server (tree entries, ``fileChanged`` frames) is
canonical: relative to the watched root and joined with ``/`` regardless of
the platform separator.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import PurePath

    from stilo._types import CanonicalPath


def normalize(
    full_path: str | PurePath,
    root_path: str | PurePath,
    sep: str = os.sep,
) -> CanonicalPath:
    """Convert *full_path* into a canonical path relative to *root_path*.

    Strips the root prefix, splits on *sep* and rejoins with ``/``.
    Idempotent: a path that is already canonical comes back unchanged.
    Paths outside *root_path* are not rejected here; only the prefix
    strip is skipped.

    """
    text = str(full_path)
    root = str(root_path).rstrip(sep)

    if text == root:
        return ""
    prefix = root + sep
    if root and text.startswith(prefix):
        text = text[len(prefix):]

    return "/".join(part for part in text.split(sep) if part)


def is_hidden(canonical: CanonicalPath) -> bool:
    """True when any segment of a canonical path is a dotfile or dot-directory."""
    return any(part.startswith(".") for part in canonical.split("/"))
