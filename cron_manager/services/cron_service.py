"""Cron job lifecycle: keeps the durable record and the trigger registry in lockstep."""

import json
import logging
from dataclasses import replace
from typing import List, Optional

from ..clients.trigger_registry import (
    DISABLED,
    ENABLED,
    TriggerDefinition,
    TriggerNotFoundError,
    TriggerRegistry,
    TriggerTarget,
)
from ..config import Settings, settings
from ..errors import ForbiddenError, InfrastructureError, NotFoundError, ValidationError
from ..ids import generate_cron_id, utcnow
from ..repositories.cron_repository import CronRepository
from ..saga import Saga
from ..schemas.cron import CronJob, CronOptionInput, CronStatus
from .cron_validation import validate_cron_option

logger = logging.getLogger("cron_manager.services.cron_service")


class CronService:
    def __init__(self, crons: CronRepository, triggers: TriggerRegistry, config: Settings = settings):
        self.crons = crons
        self.triggers = triggers
        self.config = config

    def trigger_name(self, cron_id: str) -> str:
        return f"{self.config.TRIGGER_NAME_PREFIX}{cron_id}"

    def _build_trigger(
        self, cron_id: str, trigger_name: str, state: str, option: CronOptionInput
    ) -> TriggerDefinition:
        return TriggerDefinition(
            name=trigger_name,
            expression=option.schedule.expression if option.schedule else "",
            state=state,
            description=option.description,
            group_name=self.config.SCHEDULER_GROUP_NAME,
            target=TriggerTarget(
                arn=self.config.EXECUTE_CRON_TARGET_ARN,
                role_arn=self.config.SCHEDULER_ROLE_ARN,
                input=json.dumps({"cronId": cron_id}),
            ),
        )

    @staticmethod
    def _validate(option: CronOptionInput) -> None:
        error = validate_cron_option(option)
        if error:
            raise ValidationError(error)

    # ── Reads ───────────────────────────────────────────────────────────────────

    def get_cron(self, cron_id: str) -> Optional[CronJob]:
        return self.crons.get(cron_id)

    def get_cron_list(self, workspace_id: str) -> List[CronJob]:
        return self.crons.list_by_workspace(workspace_id)

    def get_owned_cron(self, cron_id: str, workspace_id: str) -> CronJob:
        """Fetch a job and check that it belongs to the caller's workspace."""
        job = self.crons.get(cron_id)
        if job is None:
            raise NotFoundError("Cron not found")
        if job.workspace_id != workspace_id:
            raise ForbiddenError("Forbidden")
        return job

    # ── Writes ──────────────────────────────────────────────────────────────────

    async def create_cron(self, workspace_id: str, user_id: str, option: CronOptionInput) -> str:
        """Register the trigger, then write the record; roll the trigger back on failure."""
        self._validate(option)

        cron_id = generate_cron_id()
        trigger_name = self.trigger_name(cron_id)
        now = utcnow()
        job = CronJob(
            id=cron_id,
            workspace_id=workspace_id,
            name=option.name,
            description=option.description,
            setting=option,
            status=CronStatus.ENABLED,
            failed_count=0,
            trigger_id=trigger_name,
            created_by=user_id,
            created_at=now,
            updated_at=now,
        )
        definition = self._build_trigger(cron_id, trigger_name, ENABLED, option)

        saga = (
            Saga("create_cron")
            .step(
                "register trigger",
                lambda: self.triggers.create_trigger(definition),
                lambda: self.triggers.delete_trigger(trigger_name),
            )
            .step("write cron record", lambda: self.crons.create(job))
        )
        await saga.execute()

        logger.info("Created cron %s in workspace %s", cron_id, workspace_id)
        return cron_id

    async def update_cron(self, job: CronJob, option: CronOptionInput) -> None:
        self._validate(option)

        state = ENABLED if job.status == CronStatus.ENABLED else DISABLED
        previous = self._build_trigger(job.id, job.trigger_id, state, job.setting)
        updated = self._build_trigger(job.id, job.trigger_id, state, option)

        saga = (
            Saga("update_cron")
            .step(
                "update trigger",
                lambda: self.triggers.update_trigger(updated),
                lambda: self.triggers.update_trigger(previous),
            )
            .step(
                "update cron record",
                lambda: self.crons.update_definition(job.id, option, utcnow()),
            )
        )
        try:
            await saga.execute()
        except Exception as exc:
            logger.error("Failed to update cron %s: %s", job.id, exc)
            raise InfrastructureError("Failed to update cron") from exc

    async def delete_cron(self, job: CronJob) -> None:
        """Remove the trigger if it is still registered, then the record."""
        trigger = await self.triggers.get_trigger(job.trigger_id)
        if trigger is not None:
            try:
                await self.triggers.delete_trigger(job.trigger_id)
            except TriggerNotFoundError:
                logger.info("Trigger %s already gone", job.trigger_id)

        self.crons.delete(job.id)
        logger.info("Deleted cron %s", job.id)

    async def disable_cron(self, job: CronJob, reason: CronStatus) -> None:
        """Disable the live trigger (keeping its target) and record ``reason`` as status."""
        if reason not in (CronStatus.TOO_MANY_FAIL, CronStatus.DISABLED):
            raise ValueError(f"Unsupported disable reason: {reason}")

        saga = Saga("disable_cron")
        live = await self.triggers.get_trigger(job.trigger_id)
        if live is None:
            logger.warning("Trigger %s not found while disabling cron %s", job.trigger_id, job.id)
        else:
            disabled = replace(
                self._build_trigger(job.id, job.trigger_id, DISABLED, job.setting),
                target=live.target,
            )
            saga.step(
                "disable trigger",
                lambda: self.triggers.update_trigger(disabled),
                lambda: self.triggers.update_trigger(live),
            )
        saga.step("set cron status", lambda: self.crons.set_status(job.id, reason))

        try:
            await saga.execute()
        except TriggerNotFoundError as exc:
            raise NotFoundError("Trigger not found") from exc

        logger.warning("Cron %s disabled: %s", job.id, reason.value)
