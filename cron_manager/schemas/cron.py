from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel


class CronStatus(str, Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"
    TOO_MANY_FAIL = "TOO_MANY_FAIL"


# Input models are deliberately loose: shape errors are reported by
# services.cron_validation with a single ordered message.

class CronScheduleInput(BaseModel):
    type: Optional[str] = "cron"
    expression: Optional[str] = None


class CronActionInput(BaseModel):
    type: Optional[str] = None
    url: Optional[str] = None
    method: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    body: Optional[str] = None


class CronOptionInput(BaseModel):
    name: str = ""
    description: str = ""
    schedule: Optional[CronScheduleInput] = None
    action: Optional[CronActionInput] = None


class CronJob(BaseModel):
    id: str
    workspace_id: str
    name: str
    description: str = ""
    setting: CronOptionInput
    status: CronStatus = CronStatus.ENABLED
    failed_count: int = 0
    trigger_id: str
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CronCreatedResponse(BaseModel):
    id: str


class CronLogSummary(BaseModel):
    id: str
    status: str = ""          # HTTP status code, "Timeout" or empty
    success: bool
    duration_ms: int = 0
    started_at: datetime


class ExecutionLog(CronLogSummary):
    job_id: str
    workspace_id: str
    response_body: str = ""   # truncated excerpt
    action: Optional[CronActionInput] = None
    expire_at: Optional[int] = None


class CronLogPage(BaseModel):
    logs: List[CronLogSummary]
    cursor: Optional[str] = None


class DailySummary(BaseModel):
    date: str                 # YYYY-MM-DD, UTC
    success_count: int = 0
    failed_count: int = 0
