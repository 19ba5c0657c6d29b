"""
Log routes: ansible logs of jobs, by id or most recent.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, JSONResponse

from pgfleet.server.routes import get_server
from pgfleet.server.server import ControlServer

router = APIRouter(tags=["log"])


@router.get("/logs")
def list_logs(server: ControlServer = Depends(get_server)):
    return {"message": "ok", "data": server.list_log_dir()}


@router.get("/log/latest")
def get_latest_log(server: ControlServer = Depends(get_server)):
    path = server.latest_log()
    if path is None:
        return JSONResponse(status_code=404, content={"message": "no log found"})
    return FileResponse(path, media_type="text/plain")


@router.get("/log/{job_id}")
def get_log(job_id: str, server: ControlServer = Depends(get_server)):
    try:
        path = server.log_path(job_id)
    except ValueError:
        return JSONResponse(status_code=404, content={"message": f"log {job_id} not found"})
    if not path.is_file():
        return JSONResponse(status_code=404, content={"message": f"log {job_id} not found"})
    return FileResponse(path, media_type="text/plain")
