"""Cron job repository: maps CronJob records to store items."""

import logging
from datetime import datetime
from typing import List, Optional

from ..ids import isoformat
from ..schemas.cron import CronJob, CronOptionInput, CronStatus
from .storage import GSI1, GSI1PK, GSI1SK, PK, SK, Item, Key, Store

logger = logging.getLogger("cron_manager.repositories.cron")


class CronRepository:
    """Store-backed cron job records."""

    def __init__(self, store: Store, table: str):
        self.store = store
        self.table = table

    @staticmethod
    def key(cron_id: str) -> Key:
        return Key(f"cron#{cron_id}", f"cron#{cron_id}")

    @staticmethod
    def to_item(job: CronJob) -> Item:
        key = CronRepository.key(job.id)
        return {
            PK: key.pk,
            SK: key.sk,
            GSI1PK: f"workspace#{job.workspace_id}",
            GSI1SK: f"cron#{job.id}",
            "Id": job.id,
            "WorkspaceId": job.workspace_id,
            "Name": job.name,
            "Description": job.description,
            "Setting": job.setting.model_dump(),
            "CronStatus": job.status.value,
            "CreatedBy": job.created_by,
            "CreatedAt": isoformat(job.created_at),
            "UpdatedAt": isoformat(job.updated_at),
            "TriggerId": job.trigger_id,
            "FailedCount": job.failed_count,
        }

    @staticmethod
    def from_item(item: Item) -> CronJob:
        return CronJob(
            id=item["Id"],
            workspace_id=item["WorkspaceId"],
            name=item.get("Name", ""),
            description=item.get("Description", ""),
            setting=CronOptionInput.model_validate(item.get("Setting") or {}),
            status=CronStatus(item.get("CronStatus", CronStatus.ENABLED.value)),
            failed_count=int(item.get("FailedCount", 0)),
            trigger_id=item["TriggerId"],
            created_by=item.get("CreatedBy"),
            created_at=item["CreatedAt"],
            updated_at=item["UpdatedAt"],
        )

    def create(self, job: CronJob) -> None:
        """Insert a new job; ConflictError if the id is already taken."""
        self.store.put_item(self.table, self.to_item(job), if_not_exists=True)

    def get(self, cron_id: str) -> Optional[CronJob]:
        item = self.store.get_item(self.table, self.key(cron_id))
        if not item:
            return None
        return self.from_item(item)

    def list_by_workspace(self, workspace_id: str) -> List[CronJob]:
        jobs: List[CronJob] = []
        cursor = None
        while True:
            page = self.store.query(
                self.table,
                f"workspace#{workspace_id}",
                sort_prefix="cron#",
                index=GSI1,
                cursor=cursor,
            )
            jobs.extend(self.from_item(item) for item in page.items)
            cursor = page.cursor
            if not cursor:
                return jobs

    def update_definition(self, cron_id: str, option: CronOptionInput, updated_at: datetime) -> None:
        self.store.update_item(
            self.table,
            self.key(cron_id),
            set_values={
                "Setting": option.model_dump(),
                "Name": option.name,
                "Description": option.description,
                "UpdatedAt": isoformat(updated_at),
            },
            must_exist=True,
        )

    def set_status(self, cron_id: str, status: CronStatus) -> None:
        self.store.update_item(
            self.table, self.key(cron_id), set_values={"CronStatus": status.value}, must_exist=True
        )

    def increment_failed_count(self, cron_id: str) -> None:
        self.store.update_item(
            self.table, self.key(cron_id), add_values={"FailedCount": 1}, must_exist=True
        )

    def reset_failed_count(self, cron_id: str) -> None:
        self.store.update_item(
            self.table, self.key(cron_id), set_values={"FailedCount": 0}, must_exist=True
        )

    def delete(self, cron_id: str) -> None:
        self.store.delete_item(self.table, self.key(cron_id))
