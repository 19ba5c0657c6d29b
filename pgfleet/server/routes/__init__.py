"""HTTP routes of the control server."""

from fastapi import Request

from pgfleet.server.server import ControlServer


def get_server(request: Request) -> ControlServer:
    """Return the ControlServer bound to the running app."""
    return request.app.state.server
