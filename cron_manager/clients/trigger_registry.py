from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

ENABLED = "ENABLED"
DISABLED = "DISABLED"


@dataclass(frozen=True)
class TriggerTarget:
    arn: str
    role_arn: str
    input: str  # JSON payload delivered to the target on every firing
    maximum_event_age_seconds: int = 60
    maximum_retry_attempts: int = 0


@dataclass(frozen=True)
class TriggerDefinition:
    name: str
    expression: str
    state: str
    target: TriggerTarget
    description: str = ""
    group_name: str = "default"
    flexible_time_window: dict = field(default_factory=lambda: {"Mode": "OFF"})


class TriggerNotFoundError(Exception):
    """Raised by :meth:`TriggerRegistry.delete_trigger` when the trigger is absent."""


class TriggerRegistry(ABC):
    """Named, cron-driven triggers firing a fixed payload at a fixed target."""

    @abstractmethod
    async def create_trigger(self, definition: TriggerDefinition) -> None:
        pass

    @abstractmethod
    async def update_trigger(self, definition: TriggerDefinition) -> None:
        pass

    @abstractmethod
    async def delete_trigger(self, name: str) -> None:
        pass

    @abstractmethod
    async def get_trigger(self, name: str) -> Optional[TriggerDefinition]:
        pass
