"""
Networking layer: the listening socket and accepted client connections.
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
]
