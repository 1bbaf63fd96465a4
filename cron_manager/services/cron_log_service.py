"""Read side of execution history: paginated logs, log detail and daily statistics."""

import re
from datetime import date, timedelta
from typing import Callable, List, Optional

from ..errors import ValidationError
from ..ids import utcnow
from ..repositories.cron_log_repository import CronLogRepository
from ..schemas.cron import CronLogPage, DailySummary, ExecutionLog

MAX_PAGE_SIZE = 100
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)


class CronLogService:
    def __init__(self, logs: CronLogRepository, today: Callable[[], date] = lambda: utcnow().date()):
        self.logs = logs
        self.today = today

    def get_cron_logs(self, cron_id: str, limit: int = 20, cursor: Optional[str] = None) -> CronLogPage:
        """Newest-first page of log summaries; ``cursor`` is opaque."""
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        logs, next_cursor = self.logs.list_by_cron(cron_id, limit, cursor)
        return CronLogPage(logs=logs, cursor=next_cursor)

    def get_cron_log_detail(self, cron_id: str, log_id: str) -> Optional[ExecutionLog]:
        return self.logs.get_log(cron_id, log_id)

    def get_cron_statistic(self, start_date: str, end_date: str) -> List[DailySummary]:
        """Inclusive range; ``YYYY-MM-DD`` strings sort chronologically."""
        for value in (start_date, end_date):
            if not _DATE_RE.fullmatch(value or ""):
                raise ValidationError(f"Invalid date: {value}")
        return self.logs.list_daily(start_date, end_date)

    def get_recent_statistic(self, days: int = 31) -> List[DailySummary]:
        """Daily counts from ``days`` ago up to yesterday."""
        today = self.today()
        start = today - timedelta(days=days)
        end = today - timedelta(days=1)
        return self.get_cron_statistic(start.isoformat(), end.isoformat())
