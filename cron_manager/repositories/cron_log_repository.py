"""Cron log repository - stores execution logs and daily success/failure counts."""

import logging
from typing import List, Optional, Tuple

from ..ids import isoformat
from ..schemas.cron import CronActionInput, CronLogSummary, DailySummary, ExecutionLog
from .storage import GSI1PK, GSI1SK, PK, SK, TTL, Item, Key, Store

logger = logging.getLogger("cron_manager.repositories.cron_log")

DAILY_SUMMARY_PK = "daily-summary"


class CronLogRepository:
    """Store-backed execution logs; lives in its own logical table."""

    def __init__(self, store: Store, table: str):
        self.store = store
        self.table = table

    @staticmethod
    def partition(cron_id: str) -> str:
        return f"cronlog#{cron_id}"

    @staticmethod
    def _summary_from_item(item: Item) -> CronLogSummary:
        return CronLogSummary(
            id=item[SK],
            status=item.get("CronStatus", ""),
            success=bool(item.get("Success", False)),
            duration_ms=int(item.get("CronDuration", 0)),
            started_at=item["StartedAt"],
        )

    @staticmethod
    def _log_from_item(item: Item) -> ExecutionLog:
        action = item.get("CronAction")
        return ExecutionLog(
            id=item[SK],
            job_id=item["JobId"],
            workspace_id=item.get("WorkspaceId", ""),
            status=item.get("CronStatus", ""),
            success=bool(item.get("Success", False)),
            duration_ms=int(item.get("CronDuration", 0)),
            started_at=item["StartedAt"],
            response_body=item.get("Content", ""),
            action=CronActionInput.model_validate(action) if action else None,
            expire_at=item.get(TTL),
        )

    def insert_log(self, log: ExecutionLog) -> None:
        started_at = isoformat(log.started_at)
        item: Item = {
            PK: self.partition(log.job_id),
            SK: log.id,
            GSI1PK: f"workspace#{log.workspace_id}",
            GSI1SK: f"cronlog#{log.job_id}#{started_at}",
            "JobId": log.job_id,
            "WorkspaceId": log.workspace_id,
            "StartedAt": started_at,
            "CronStatus": log.status,
            "Success": log.success,
            "CronDuration": log.duration_ms,
            "Content": log.response_body,
            "CronAction": log.action.model_dump() if log.action else None,
        }
        if log.expire_at is not None:
            item[TTL] = log.expire_at
        self.store.put_item(self.table, item)

    def add_daily_count(self, date: str, success: bool) -> None:
        """Atomically bump the day's success or failure counter."""
        self.store.update_item(
            self.table,
            Key(DAILY_SUMMARY_PK, date),
            add_values={
                "SuccessCount": 1 if success else 0,
                "FailedCount": 0 if success else 1,
            },
        )

    def list_by_cron(
        self, cron_id: str, limit: int = 20, cursor: Optional[str] = None
    ) -> Tuple[List[CronLogSummary], Optional[str]]:
        page = self.store.query(
            self.table,
            self.partition(cron_id),
            limit=limit,
            descending=True,
            cursor=cursor,
        )
        return [self._summary_from_item(item) for item in page.items], page.cursor

    def get_log(self, cron_id: str, log_id: str) -> Optional[ExecutionLog]:
        item = self.store.get_item(self.table, Key(self.partition(cron_id), log_id))
        if not item:
            return None
        return self._log_from_item(item)

    def list_daily(self, start_date: str, end_date: str) -> List[DailySummary]:
        summaries: List[DailySummary] = []
        cursor = None
        while True:
            page = self.store.query(
                self.table,
                DAILY_SUMMARY_PK,
                sort_between=(start_date, end_date),
                cursor=cursor,
            )
            summaries.extend(
                DailySummary(
                    date=item[SK],
                    success_count=int(item.get("SuccessCount", 0)),
                    failed_count=int(item.get("FailedCount", 0)),
                )
                for item in page.items
            )
            cursor = page.cursor
            if not cursor:
                return summaries
