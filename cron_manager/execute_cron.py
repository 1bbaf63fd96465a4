"""Trigger target: invoked by EventBridge Scheduler with ``{"cronId": ...}``."""

import asyncio
import json
import logging
from typing import Any, Optional

from .config import settings
from .dependencies import get_cron_service, get_store, get_trigger_registry
from .errors import ValidationError
from .repositories.cron_log_repository import CronLogRepository
from .repositories.cron_repository import CronRepository
from .services.cron_runner import CronRunner

logger = logging.getLogger("cron_manager.execute_cron")


def _cron_id(event: Any) -> str:
    if isinstance(event, str):
        try:
            event = json.loads(event)
        except ValueError as exc:
            raise ValidationError("Invalid event payload") from exc
    cron_id = event.get("cronId") if isinstance(event, dict) else None
    if not cron_id or not isinstance(cron_id, str):
        raise ValidationError("cronId is required")
    return cron_id


def build_runner() -> CronRunner:
    store = get_store()
    return CronRunner(
        CronRepository(store, settings.STORE_TABLE_NAME),
        CronLogRepository(store, settings.CRON_LOG_TABLE_NAME),
        get_cron_service(store, get_trigger_registry()),
    )


def handler(event: Any, context: Optional[Any] = None) -> dict:
    cron_id = _cron_id(event)
    logger.info("Executing cron %s", cron_id)
    return asyncio.run(build_runner().run(cron_id))
