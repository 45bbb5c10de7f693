"""Push-channel messages.

The wire protocol defines exactly four message shapes, each serialized as
one JSON text frame::

    {"type": "fileTreeUpdate", "data": [TreeEntry, ...]}
    {"type": "fileChanged", "path": "<canonical relative path>"}
    {"type": "styleChanged"}
    {"type": "test", "message": "Connection established"}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from stilo.content.tree import entries_to_json

if TYPE_CHECKING:
    from stilo._types import CanonicalPath
    from stilo.content.tree import TreeEntry


@dataclass(frozen=True, slots=True)
class FileTreeUpdate:
    """Complete tree snapshot (README entry first)."""

    entries: tuple[TreeEntry, ...]

    type: ClassVar[str] = "fileTreeUpdate"

    def to_json(self) -> dict[str, Any]:
        return {"type": self.type, "data": entries_to_json(self.entries)}


@dataclass(frozen=True, slots=True)
class FileChanged:
    """A single sample file was modified."""

    path: CanonicalPath

    type: ClassVar[str] = "fileChanged"

    def to_json(self) -> dict[str, Any]:
        return {"type": self.type, "path": self.path}


@dataclass(frozen=True, slots=True)
class StyleChanged:
    """The stylesheet was rebuilt; clients reload their CSS."""

    type: ClassVar[str] = "styleChanged"

    def to_json(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(frozen=True, slots=True)
class ConnectionAck:
    """Sent once to a client right after its initial tree snapshot."""

    message: str = "Connection established"

    type: ClassVar[str] = "test"

    def to_json(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message}


type OutboundMessage = FileTreeUpdate | FileChanged | StyleChanged | ConnectionAck


def encode(message: OutboundMessage) -> str:
    """Serialize a message to its JSON text frame."""
    return json.dumps(message.to_json(), separators=(",", ":"))
