"""FastAPI application for the pgfleet control server."""

import logging
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from pgfleet import __version__
from pgfleet.exceptions import (
    ClusterNotFoundError,
    ConflictError,
    PgFleetError,
    SchemaError,
    ValidationError,
)
from pgfleet.server.routes import config, job, log, pgsql
from pgfleet.server.server import ControlServer, ServerSettings

logger = logging.getLogger(__name__)

PACKAGED_PUBLIC_DIR = Path(__file__).parent / "public"


def status_of(exc: PgFleetError) -> int:
    if isinstance(exc, (SchemaError, ValidationError)):
        return 400
    if isinstance(exc, ClusterNotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    return 500


async def pgfleet_error_handler(request: Request, exc: PgFleetError) -> JSONResponse:
    """Render pgfleet errors as ``{"message": ...}`` with a matching status code."""
    status = status_of(exc)
    content = {"message": exc.message}
    if isinstance(exc, ConflictError) and exc.job is not None:
        content["data"] = exc.job.to_dict()
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content=content)


def create_app(server: ControlServer) -> FastAPI:
    """
    Build the HTTP adapter over a ControlServer.

    Args:
        server: Control plane shared by all handlers

    Returns:
        FastAPI app with API routes under ``/api/v1`` and static assets at ``/``
    """
    app = FastAPI(
        title="pgfleet",
        description="Control plane for PostgreSQL cluster fleets",
        version=__version__,
    )
    app.state.server = server
    app.add_exception_handler(PgFleetError, pgfleet_error_handler)

    app.include_router(config.router, prefix="/api/v1")
    app.include_router(job.router, prefix="/api/v1")
    app.include_router(log.router, prefix="/api/v1")
    app.include_router(pgsql.router, prefix="/api/v1")

    public_dir = server.public_dir or PACKAGED_PUBLIC_DIR
    logger.info("serve static resource from %s", public_dir)
    app.mount("/", StaticFiles(directory=str(public_dir), html=True), name="public")
    return app


def start_server(settings: ServerSettings) -> None:
    """Load the inventory, then serve until interrupted."""
    server = ControlServer(settings.config_path, settings.data_dir, settings.public_dir)
    host, port = settings.host_port()
    logger.info("pgfleet server listening on %s:%d", host, port)
    uvicorn.run(create_app(server), host=host, port=port, log_level="info")
