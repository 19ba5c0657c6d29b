"""
Config routes: read and replace the inventory.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from pgfleet.server.routes import get_server
from pgfleet.server.server import ControlServer

router = APIRouter(tags=["config"])


@router.get("/config", response_class=PlainTextResponse)
def get_config(server: ControlServer = Depends(get_server)):
    """Return the current inventory document as raw text."""
    return server.read_config().decode("utf-8", errors="replace")


@router.post("/config")
async def post_config(request: Request, server: ControlServer = Depends(get_server)):
    """
    Replace the inventory with the request body.

    Returns:
        400 if the body is not a valid inventory, 409 if a job is running,
        500 if writing or reloading fails
    """
    data = await request.body()
    server.update_config(data)
    return {"message": "ok"}
