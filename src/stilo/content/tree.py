"""Tree builder — the sample directory as an ordered tree of entries.

Walks the samples root and produces the snapshot pushed to browsers and
returned by ``/api/files``.  Only directories and files with a recognized
extension are kept; directories are always kept, even when empty.

A synthetic ``README.md`` entry is prepended to every snapshot sent to
clients.  It is served from the project root, not from the samples tree.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stilo._errors import FilesystemError
from stilo.content.paths import normalize

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from stilo._types import CanonicalPath, EntryKind


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """One filesystem node exposed to clients.

    Attributes:
        name: Base name of the node.
        path: Canonical path relative to the watched root.
        kind: ``"file"`` or ``"directory"``.
        children: Immediate children; always empty for files.

    """

    name: str
    path: CanonicalPath
    kind: EntryKind
    children: tuple[TreeEntry, ...] = ()

    @property
    def is_directory(self) -> bool:
        return self.kind == "directory"

    def to_json(self) -> dict[str, Any]:
        """Wire shape: ``{name, path, type, children?}``."""
        data: dict[str, Any] = {"name": self.name, "path": self.path, "type": self.kind}
        if self.is_directory:
            data["children"] = [child.to_json() for child in self.children]
        return data


README_ENTRY = TreeEntry(name="README.md", path="README.md", kind="file")

DEFAULT_EXTENSIONS: tuple[str, ...] = (".html",)


def build_tree(
    root: Path,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
) -> tuple[TreeEntry, ...]:
    """Walk *root* and return its entries, sorted by name at every level.

    Dot-prefixed names are listed like any other.  Symlinked directories
    are followed, but a directory already visited during this walk (same
    device and inode) is listed without recursing again, so link cycles
    terminate.

    Raises:
        FilesystemError: If a directory cannot be read (missing, permissions,
            removed mid-walk).

    """
    suffixes = frozenset(extensions)
    visited: set[tuple[int, int]] = set()
    return _walk(root, root, suffixes, visited)


def _walk(
    directory: Path,
    root: Path,
    suffixes: frozenset[str],
    visited: set[tuple[int, int]],
) -> tuple[TreeEntry, ...]:
    try:
        stat = directory.stat()
        visited.add((stat.st_dev, stat.st_ino))
        with os.scandir(directory) as it:
            dirents = sorted(it, key=lambda d: d.name)
    except OSError as exc:
        msg = f"Cannot read directory {directory}: {exc}"
        raise FilesystemError(msg) from exc

    entries: list[TreeEntry] = []
    for dirent in dirents:
        path = Path(dirent.path)
        canonical = normalize(path, root)
        try:
            is_dir = dirent.is_dir()
            is_file = not is_dir and dirent.is_file()
        except OSError:
            # Vanished between listing and stat.
            continue

        if is_dir:
            try:
                st = dirent.stat()
            except OSError:
                continue
            if (st.st_dev, st.st_ino) in visited:
                children: tuple[TreeEntry, ...] = ()
            else:
                children = _walk(path, root, suffixes, visited)
            entries.append(
                TreeEntry(name=dirent.name, path=canonical, kind="directory", children=children)
            )
        elif is_file and path.suffix in suffixes:
            entries.append(TreeEntry(name=dirent.name, path=canonical, kind="file"))

    return tuple(entries)


def with_readme(entries: Iterable[TreeEntry]) -> tuple[TreeEntry, ...]:
    """Prepend the README entry to a tree snapshot."""
    return (README_ENTRY, *entries)


def snapshot(
    root: Path,
    extensions: Sequence[str] = DEFAULT_EXTENSIONS,
) -> tuple[TreeEntry, ...]:
    """Build a client-ready snapshot: README first, then the tree.

    A ``FilesystemError`` is reported on stderr and degrades to a snapshot
    holding only the README entry.

    """
    try:
        entries = build_tree(root, extensions)
    except FilesystemError as exc:
        print(f"  Tree error: {exc}", file=sys.stderr)
        entries = ()
    return with_readme(entries)


def entries_to_json(entries: Iterable[TreeEntry]) -> list[dict[str, Any]]:
    """Serialize a sequence of entries to the JSON wire shape."""
    return [entry.to_json() for entry in entries]


def iter_entries(entries: Iterable[TreeEntry]) -> Iterable[TreeEntry]:
    """Depth-first iteration over every entry in a tree."""
    for entry in entries:
        yield entry
        if entry.children:
            yield from iter_entries(entry.children)


def directory_paths(entries: Iterable[TreeEntry]) -> frozenset[CanonicalPath]:
    """Canonical paths of every directory in a tree."""
    return frozenset(e.path for e in iter_entries(entries) if e.is_directory)
