from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Response

from ..dependencies import (
    get_cron_log_service,
    get_cron_service,
    require_session,
    require_workspace_session,
)
from ..errors import NotFoundError, ValidationError
from ..schemas.auth import UserSession
from ..schemas.cron import CronCreatedResponse, CronOptionInput
from ..services.cron_log_service import CronLogService
from ..services.cron_service import CronService

router = APIRouter(tags=["Cron"])

WorkspaceSession = Annotated[UserSession, Depends(require_workspace_session)]
Crons = Annotated[CronService, Depends(get_cron_service)]
Logs = Annotated[CronLogService, Depends(get_cron_log_service)]


# -- Jobs --

@router.post("/v1/workspace/{workspace_id}/cron", status_code=201)
async def create_cron(workspace_id: str, option: CronOptionInput, session: WorkspaceSession, crons: Crons):
    """Register a trigger and store a new job in the workspace."""
    cron_id = await crons.create_cron(workspace_id, session.user.id, option)
    return {"data": CronCreatedResponse(id=cron_id)}

@router.get("/v1/workspace/{workspace_id}/cron")
def list_crons(workspace_id: str, session: WorkspaceSession, crons: Crons):
    return {"data": crons.get_cron_list(workspace_id)}

@router.get("/v1/workspace/{workspace_id}/cron/{cron_id}")
def get_cron(workspace_id: str, cron_id: str, session: WorkspaceSession, crons: Crons):
    return {"data": crons.get_owned_cron(cron_id, workspace_id)}

@router.post("/v1/workspace/{workspace_id}/cron/{cron_id}")
async def update_cron(
    workspace_id: str, cron_id: str, option: CronOptionInput, session: WorkspaceSession, crons: Crons
):
    """Replace the job definition and its trigger."""
    job = crons.get_owned_cron(cron_id, workspace_id)
    await crons.update_cron(job, option)
    return {"data": CronCreatedResponse(id=cron_id)}

@router.delete("/v1/workspace/{workspace_id}/cron/{cron_id}")
async def delete_cron(workspace_id: str, cron_id: str, session: WorkspaceSession, crons: Crons):
    job = crons.get_owned_cron(cron_id, workspace_id)
    await crons.delete_cron(job)
    return Response(status_code=204)


# -- Execution logs --

@router.get("/v1/workspace/{workspace_id}/cron/{cron_id}/logs")
def list_cron_logs(
    workspace_id: str,
    cron_id: str,
    session: WorkspaceSession,
    crons: Crons,
    logs: Logs,
    limit: int = 20,
    cursor: Optional[str] = None,
):
    """Newest-first page of execution summaries."""
    crons.get_owned_cron(cron_id, workspace_id)
    return {"data": logs.get_cron_logs(cron_id, limit=limit, cursor=cursor)}

@router.get("/v1/workspace/{workspace_id}/cron/{cron_id}/logs/{log_id}")
def get_cron_log(
    workspace_id: str, cron_id: str, log_id: str, session: WorkspaceSession, crons: Crons, logs: Logs
):
    crons.get_owned_cron(cron_id, workspace_id)
    log = logs.get_cron_log_detail(cron_id, log_id)
    if log is None:
        raise NotFoundError("Log not found")
    return {"data": log}


# -- Statistics --

@router.get("/v1/stats/cron")
def cron_statistics(
    session: Annotated[UserSession, Depends(require_session)],
    logs: Logs,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
):
    """Daily success/failure totals; defaults to the last 31 full days."""
    if bool(start_date) != bool(end_date):
        raise ValidationError("start_date and end_date must be given together")
    if start_date and end_date:
        return {"data": logs.get_cron_statistic(start_date, end_date)}
    return {"data": logs.get_recent_statistic()}
