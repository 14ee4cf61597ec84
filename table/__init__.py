"""Table host package: drives the round engine for websocket clients."""

from .server import TableServer

__all__ = ["TableServer"]
