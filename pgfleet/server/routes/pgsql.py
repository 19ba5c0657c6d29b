"""
Cluster routes: inventory digests and streamed init/remove of a cluster.
"""

import logging
from typing import Iterator

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, StreamingResponse

from pgfleet.constants import GROUP_META
from pgfleet.runner.job import Job
from pgfleet.server.routes import get_server
from pgfleet.server.server import ControlServer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pgsql"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def sse_events(event: str, lines: Iterator[str], job: Job) -> Iterator[str]:
    """Wrap output lines as server-sent events, then report the final status."""
    for line in lines:
        yield f"event: {event}\ndata: {line}\n\n"
    yield f"event: {event}\ndata: [job {job.id} {job.status.value}]\n\n"


def stream_cluster_job(server: ControlServer, cluster: str, playbook: str, name: str):
    server.get_cluster(cluster)
    job = server.new_job(playbook, cluster, name=name)
    lines = server.stream_job(job)
    return StreamingResponse(
        sse_events(cluster, lines, job),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/infra", response_class=PlainTextResponse)
def get_infra(server: ControlServer = Depends(get_server)):
    return server.executor.config.infra_info()


@router.get("/pgsql")
def list_clusters(server: ControlServer = Depends(get_server)):
    config = server.executor.config
    clusters = [c.to_dict() for c in config.clusters if c.name != GROUP_META]
    return {"message": "ok", "data": clusters}


@router.get("/pgsql/{cluster}")
def get_cluster(cluster: str, server: ControlServer = Depends(get_server)):
    return {"message": "ok", "data": server.get_cluster(cluster).to_dict()}


@router.post("/pgsql/{cluster}")
def init_cluster(cluster: str, server: ControlServer = Depends(get_server)):
    """Init a cluster, streaming ansible output as server-sent events."""
    logger.info("init cluster %s", cluster)
    return stream_cluster_job(server, cluster, "pgsql.yml", f"pgsql init {cluster}")


@router.delete("/pgsql/{cluster}")
def remove_cluster(cluster: str, server: ControlServer = Depends(get_server)):
    """Remove a cluster, streaming ansible output as server-sent events."""
    logger.info("remove cluster %s", cluster)
    return stream_cluster_job(
        server, cluster, "pgsql-remove.yml", f"pgsql remove {cluster}"
    )
