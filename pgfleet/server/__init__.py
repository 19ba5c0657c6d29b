"""Control server: job slot, persistence and the HTTP adapter."""

from pgfleet.server.server import ControlServer, ServerSettings

__all__ = ["ControlServer", "ServerSettings"]
