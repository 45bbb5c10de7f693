"""Reactive layer — change propagation to connected browsers.

Connects filesystem changes and stylesheet builds to the push channel
through the watch session and the broadcast hub.
"""

from stilo.reactive.broadcaster import BroadcastHub, ClientConnection
from stilo.reactive.build import BuildTrigger
from stilo.reactive.messages import (
    ConnectionAck,
    FileChanged,
    FileTreeUpdate,
    OutboundMessage,
    StyleChanged,
)
from stilo.reactive.session import WatchSession

__all__ = [
    "BroadcastHub",
    "BuildTrigger",
    "ClientConnection",
    "ConnectionAck",
    "FileChanged",
    "FileTreeUpdate",
    "OutboundMessage",
    "StyleChanged",
    "WatchSession",
]
