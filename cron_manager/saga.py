"""Ordered multi-step operations across systems without a shared transaction.

Each step pairs an action with an optional compensation. Steps run in order;
when one fails, the compensations of the steps that already completed run in
reverse order and the original error is re-raised. A failing compensation is
logged and never replaces the original error.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Union

logger = logging.getLogger("cron_manager.saga")

StepCallable = Callable[[], Union[Any, Awaitable[Any]]]


async def _invoke(fn: StepCallable) -> Any:
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass
class SagaStep:
    name: str
    action: StepCallable
    compensation: Optional[StepCallable] = None


class Saga:
    def __init__(self, name: str):
        self.name = name
        self.steps: List[SagaStep] = []

    def step(
        self,
        name: str,
        action: StepCallable,
        compensation: Optional[StepCallable] = None,
    ) -> "Saga":
        self.steps.append(SagaStep(name, action, compensation))
        return self

    async def execute(self) -> None:
        completed: List[SagaStep] = []
        for step in self.steps:
            try:
                await _invoke(step.action)
            except Exception as exc:
                logger.error("Saga '%s' failed at step '%s': %s", self.name, step.name, exc)
                await self._unwind(completed)
                raise
            completed.append(step)

    async def _unwind(self, completed: List[SagaStep]) -> None:
        for step in reversed(completed):
            if step.compensation is None:
                continue
            try:
                await _invoke(step.compensation)
                logger.info("Saga '%s' compensated step '%s'", self.name, step.name)
            except Exception as exc:
                logger.error(
                    "Saga '%s' failed to compensate step '%s': %s", self.name, step.name, exc
                )
