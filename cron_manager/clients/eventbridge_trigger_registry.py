import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import ConflictError, InfrastructureError
from .trigger_registry import TriggerDefinition, TriggerNotFoundError, TriggerRegistry, TriggerTarget

logger = logging.getLogger("cron_manager.clients.eventbridge_trigger_registry")


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class EventBridgeTriggerRegistry(TriggerRegistry):
    """Trigger registry backed by Amazon EventBridge Scheduler schedules."""

    def __init__(self, group_name: str, region_name: Optional[str] = None, client: Any = None):
        self.group_name = group_name
        self.region_name = region_name
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("scheduler", region_name=self.region_name)
        return self._client

    def _to_params(self, definition: TriggerDefinition) -> dict:
        target = definition.target
        return {
            "Name": definition.name,
            "GroupName": definition.group_name or self.group_name,
            "ScheduleExpression": definition.expression,
            "State": definition.state,
            "Description": definition.description,
            "FlexibleTimeWindow": dict(definition.flexible_time_window),
            "Target": {
                "Arn": target.arn,
                "RoleArn": target.role_arn,
                "Input": target.input,
                "RetryPolicy": {
                    "MaximumEventAgeInSeconds": target.maximum_event_age_seconds,
                    "MaximumRetryAttempts": target.maximum_retry_attempts,
                },
            },
        }

    @staticmethod
    def _from_response(data: dict) -> TriggerDefinition:
        target = data.get("Target", {})
        retry = target.get("RetryPolicy", {})
        return TriggerDefinition(
            name=data["Name"],
            expression=data.get("ScheduleExpression", ""),
            state=data.get("State", ""),
            description=data.get("Description", ""),
            group_name=data.get("GroupName", ""),
            flexible_time_window=data.get("FlexibleTimeWindow", {"Mode": "OFF"}),
            target=TriggerTarget(
                arn=target.get("Arn", ""),
                role_arn=target.get("RoleArn", ""),
                input=target.get("Input", ""),
                maximum_event_age_seconds=retry.get("MaximumEventAgeInSeconds", 60),
                maximum_retry_attempts=retry.get("MaximumRetryAttempts", 0),
            ),
        )

    async def _call(self, operation: str, **params) -> dict:
        try:
            return await asyncio.to_thread(getattr(self.client, operation), **params)
        except ClientError as exc:
            code = _error_code(exc)
            if code == "ResourceNotFoundException":
                raise TriggerNotFoundError(params.get("Name", "")) from exc
            if code == "ConflictException":
                raise ConflictError("Trigger already exists") from exc
            logger.error("Scheduler %s failed (%s): %s", operation, code, exc)
            raise InfrastructureError("Trigger registry call failed") from exc
        except BotoCoreError as exc:
            logger.error("Scheduler %s failed: %s", operation, exc)
            raise InfrastructureError("Trigger registry call failed") from exc

    async def create_trigger(self, definition: TriggerDefinition) -> None:
        await self._call("create_schedule", **self._to_params(definition))

    async def update_trigger(self, definition: TriggerDefinition) -> None:
        await self._call("update_schedule", **self._to_params(definition))

    async def delete_trigger(self, name: str) -> None:
        await self._call("delete_schedule", Name=name, GroupName=self.group_name)

    async def get_trigger(self, name: str) -> Optional[TriggerDefinition]:
        try:
            data = await self._call("get_schedule", Name=name, GroupName=self.group_name)
        except TriggerNotFoundError:
            return None
        return self._from_response(data)
