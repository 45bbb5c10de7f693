"""Shared type definitions for stilo."""

from typing import Literal

# Kind of node exposed in the file tree
type EntryKind = Literal["file", "directory"]

# Classified filesystem mutation
type ChangeKind = Literal[
    "file-added",
    "file-changed",
    "file-removed",
    "dir-added",
    "dir-removed",
]

# Push-channel connection lifecycle
type ConnectionState = Literal["open", "closing", "closed"]

# Forward-slash path relative to the watched root (e.g. "notes/a.html")
type CanonicalPath = str

# Push-channel client identifier
type ClientID = str
