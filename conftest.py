from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cron_manager import models  # noqa: F401
from cron_manager.clients.trigger_registry import TriggerDefinition, TriggerNotFoundError, TriggerRegistry
from cron_manager.database import Base
from cron_manager.errors import ConflictError, InfrastructureError
from cron_manager.repositories.cron_log_repository import CronLogRepository
from cron_manager.repositories.cron_repository import CronRepository
from cron_manager.repositories.sql_storage import SqlStore
from cron_manager.schemas.cron import CronActionInput, CronOptionInput, CronScheduleInput
from cron_manager.services.cron_service import CronService

MAIN_TABLE = "test-main"
LOG_TABLE = "test-log"


class FakeTriggerRegistry(TriggerRegistry):
    """In-memory trigger registry; ``fail_on`` names operations that raise."""

    def __init__(self):
        self.triggers: Dict[str, TriggerDefinition] = {}
        self.calls: List[str] = []
        self.fail_on: Set[str] = set()

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise InfrastructureError(f"{operation} failed")

    async def create_trigger(self, definition: TriggerDefinition) -> None:
        self._enter("create")
        if definition.name in self.triggers:
            raise ConflictError("Trigger already exists")
        self.triggers[definition.name] = definition

    async def update_trigger(self, definition: TriggerDefinition) -> None:
        self._enter("update")
        if definition.name not in self.triggers:
            raise TriggerNotFoundError(definition.name)
        self.triggers[definition.name] = definition

    async def delete_trigger(self, name: str) -> None:
        self._enter("delete")
        if self.triggers.pop(name, None) is None:
            raise TriggerNotFoundError(name)

    async def get_trigger(self, name: str) -> Optional[TriggerDefinition]:
        self._enter("get")
        return self.triggers.get(name)


class StepClock:
    """Returns a strictly increasing UTC time on every call."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


def make_option(**overrides) -> CronOptionInput:
    data = {
        "name": "Ping service",
        "description": "health ping",
        "schedule": CronScheduleInput(type="cron", expression="cron(*/5 * * * ? *)"),
        "action": CronActionInput(type="fetch", url="https://example.com/hook", method="GET"),
    }
    data.update(overrides)
    return CronOptionInput(**data)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlStore(session_factory)


@pytest.fixture
def triggers():
    return FakeTriggerRegistry()


@pytest.fixture
def crons(store):
    return CronRepository(store, MAIN_TABLE)


@pytest.fixture
def logs(store):
    return CronLogRepository(store, LOG_TABLE)


@pytest.fixture
def cron_service(crons, triggers):
    return CronService(crons, triggers)
