"""Per-tick execution of a cron job's HTTP action."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx

from ..config import Settings, settings
from ..errors import NotFoundError
from ..ids import utcnow
from ..repositories.cron_log_repository import CronLogRepository
from ..repositories.cron_repository import CronRepository
from ..schemas.cron import CronActionInput, CronStatus, ExecutionLog
from .cron_service import CronService

logger = logging.getLogger("cron_manager.services.cron_runner")

MAX_RESPONSE_BODY = 10_000
TIMEOUT_STATUS = "Timeout"


def acknowledgement() -> dict:
    return {"statusCode": 200, "body": json.dumps("OK")}


@dataclass
class ActionOutcome:
    success: bool
    status: str
    body: str
    duration_ms: int


class CronRunner:
    """Invoked once per trigger firing with the job id from the trigger payload."""

    def __init__(
        self,
        crons: CronRepository,
        logs: CronLogRepository,
        cron_service: CronService,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.crons = crons
        self.logs = logs
        self.cron_service = cron_service
        self.config = config
        self.transport = transport
        self.clock = clock

    @staticmethod
    def _log_id(started_at: datetime) -> str:
        # Millisecond timestamp keeps ids sortable; the suffix separates same-ms ticks.
        millis = int(started_at.timestamp() * 1000)
        return f"{millis:013d}-{secrets.token_hex(3)}"

    async def _perform(self, action: CronActionInput) -> ActionOutcome:
        timeout = self.config.CRON_ACTION_TIMEOUT_SECONDS
        success, status, body = False, "", ""
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                response = await asyncio.wait_for(
                    client.request(
                        action.method or "GET",
                        action.url,
                        headers=action.headers,
                        content=action.body,
                    ),
                    timeout=timeout,
                )
            status = str(response.status_code)
            success = response.is_success
            body = response.text
        except (httpx.TimeoutException, asyncio.TimeoutError):
            status = TIMEOUT_STATUS
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Cron action %s %s failed: %s", action.method, action.url, exc)
        except Exception as exc:
            # Request construction errors (e.g. unencodable headers) count as failed ticks.
            logger.warning("Cron action %s %s could not be sent: %r", action.method, action.url, exc)
        duration_ms = int((time.perf_counter() - start) * 1000)
        return ActionOutcome(success, status, body, duration_ms)

    async def run(self, cron_id: str) -> dict:
        started_at = self.clock()

        job = self.crons.get(cron_id)
        if job is None:
            raise NotFoundError("Cron not found")

        if job.failed_count >= self.config.CRON_FAILURE_THRESHOLD:
            await self.cron_service.disable_cron(job, CronStatus.TOO_MANY_FAIL)
            return acknowledgement()

        action = job.setting.action or CronActionInput()
        outcome = await self._perform(action)

        if not outcome.success:
            self.crons.increment_failed_count(cron_id)
        elif job.failed_count > 0:
            self.crons.reset_failed_count(cron_id)

        self.logs.insert_log(
            ExecutionLog(
                id=self._log_id(started_at),
                job_id=cron_id,
                workspace_id=job.workspace_id,
                status=outcome.status,
                success=outcome.success,
                duration_ms=outcome.duration_ms,
                started_at=started_at,
                response_body=outcome.body[:MAX_RESPONSE_BODY],
                action=action,
                expire_at=int(time.time()) + self.config.CRON_LOG_RETENTION_SECONDS,
            )
        )
        self.logs.add_daily_count(
            started_at.astimezone(timezone.utc).date().isoformat(), outcome.success
        )

        logger.info(
            "Cron %s executed: success=%s status=%s duration=%dms",
            cron_id, outcome.success, outcome.status or "-", outcome.duration_ms,
        )
        return acknowledgement()
