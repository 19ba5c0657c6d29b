"""
Job routes: the single job slot and persisted job descriptors.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from pgfleet.base.job_command import split_tags
from pgfleet.server.routes import get_server
from pgfleet.server.server import ControlServer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["job"])


class JobInfo(BaseModel):
    """Job descriptor as returned by the API."""

    id: str
    name: str
    playbook: str
    limit: str = ""
    tags: List[str] = []
    extra_vars: Dict[str, Any] = {}
    log_path: str = ""
    status: str
    start_at: Optional[str] = None
    done_at: Optional[str] = None
    command: str = ""
    error: str = ""


class JobResponse(BaseModel):
    message: str
    data: Optional[JobInfo] = None


@router.get("/job", response_model=JobResponse)
def get_job(server: ControlServer = Depends(get_server)):
    job = server.get_job()
    if job is None:
        return {"message": "no job running", "data": None}
    return {"message": "job running", "data": job.to_dict()}


@router.post("/job", response_model=JobResponse)
def post_job(
    playbook: str = Query(..., min_length=1),
    cluster: str = "",
    tags: Optional[List[str]] = Query(None),
    server: ControlServer = Depends(get_server),
):
    """
    Create and launch a job.

    Args:
        playbook: Playbook name, ``.yml`` appended if missing
        cluster: Limit of the run
        tags: Task tags, repeatable or comma separated

    Returns:
        Descriptor of the started job; 409 if another job is running
    """
    logger.info("post job: playbook=%s cluster=%s tags=%s", playbook, cluster, tags)
    job = server.submit_job(playbook, cluster, split_tags(tags))
    return {"message": "job created", "data": job.to_dict()}


@router.delete("/job", response_model=JobResponse)
def delete_job(server: ControlServer = Depends(get_server)):
    job = server.del_job()
    if job is None:
        return {"message": "no job running", "data": None}
    return {"message": "job deleted", "data": job.to_dict()}


@router.get("/jobs")
def list_jobs(server: ControlServer = Depends(get_server)):
    return {"message": "ok", "data": server.list_job_dir()}
