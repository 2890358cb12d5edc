"""
Best-effort rollback of multi-step writes.

HubSpot has no multi-object transactions. Every mutating step of a booking or cancellation is therefore
recorded together with its inverse action, and if a later step fails the recorded inverses are applied in
reverse order. Inverse actions that fail themselves are reported instead of being dropped, so the caller
learns exactly which objects were left inconsistent.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable

from api.exceptions.upstream import PartialFailureError
from api.logger import get_logger


logger = get_logger(__name__)

Undo = Callable[[], Awaitable[Any]]


@dataclass
class CompletedStep:
    name: str
    undo: Undo


@dataclass
class StepFailure:
    step: str
    reason: str


@dataclass
class CompensationReport:
    error: str
    undone: list[str] = field(default_factory=list)
    inconsistent: list[StepFailure] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.inconsistent


@dataclass
class StepLog:
    name: str
    steps: list[CompletedStep] = field(default_factory=list)

    def record(self, step: str, undo: Undo) -> None:
        logger.debug(f"{self.name}: completed step {step}")
        self.steps.append(CompletedStep(step, undo))


class CompensationManager:
    async def compensate(self, steps: list[CompletedStep], error: BaseException) -> CompensationReport:
        report = CompensationReport(error=repr(error))
        for step in reversed(steps):
            try:
                await step.undo()
            except Exception as e:
                logger.error(f"Could not undo step {step.name}: {e!r}")
                report.inconsistent.append(StepFailure(step.name, repr(e)))
            else:
                report.undone.append(step.name)

        return report

    @asynccontextmanager
    async def sequence(self, name: str) -> AsyncIterator[StepLog]:
        """
        Run a block of steps and roll back the recorded ones if the block fails.

        The original error is re-raised after a complete rollback. If any inverse action fails a
        `PartialFailureError` carrying the compensation report is raised instead.
        """

        log = StepLog(name)
        try:
            yield log
        except Exception as error:
            if not log.steps:
                raise

            logger.warning(f"{name} failed after {len(log.steps)} step(s), compensating: {error!r}")
            report = await self.compensate(log.steps, error)
            if report.consistent:
                raise

            logger.error(
                f"{name} left inconsistent state in step(s) {', '.join(f.step for f in report.inconsistent)}"
            )
            raise PartialFailureError(report) from error
