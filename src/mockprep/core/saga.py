from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from mockprep.errors import CompensationFailure

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SagaStep:
    name: str
    action: Callable[[], Awaitable[Any]]
    compensation: Callable[[Any], Awaitable[None]] | None = None
    compensation_name: str = ""


@dataclass(slots=True)
class Saga:
    """Run steps in order; when one fails, undo the finished ones newest first.

    Compensations are best effort. Their failures are logged and recorded in
    ``compensation_failures`` but never replace the error of the failed step.
    """

    name: str
    steps: list[SagaStep] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    compensated: list[str] = field(default_factory=list)
    compensation_failures: list[CompensationFailure] = field(default_factory=list)

    def step(
        self,
        name: str,
        action: Callable[[], Awaitable[Any]],
        *,
        compensate: Callable[[Any], Awaitable[None]] | None = None,
        compensation_name: str = "",
    ) -> Saga:
        self.steps.append(
            SagaStep(
                name=name,
                action=action,
                compensation=compensate,
                compensation_name=compensation_name or f"undo_{name}",
            )
        )
        return self

    async def run(self) -> dict[str, Any]:
        results: dict[str, Any] = {}
        finished: list[tuple[SagaStep, Any]] = []
        for step in self.steps:
            try:
                result = await step.action()
            except Exception:
                logger.warning("saga %s: step %s failed; compensating %d step(s)", self.name, step.name, len(finished))
                await self._compensate(finished)
                raise
            results[step.name] = result
            finished.append((step, result))
            self.completed.append(step.name)
        return results

    async def _compensate(self, finished: list[tuple[SagaStep, Any]]) -> None:
        for step, result in reversed(finished):
            if step.compensation is None:
                continue
            try:
                await step.compensation(result)
            except Exception as exc:
                failure = CompensationFailure(step.name, step.compensation_name, exc)
                self.compensation_failures.append(failure)
                logger.error("saga %s: compensation failed: %s", self.name, failure)
                continue
            self.compensated.append(step.compensation_name)
            logger.info("saga %s: compensation %s applied", self.name, step.compensation_name)
