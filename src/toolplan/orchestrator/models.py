"""Per-strategy reports produced by the orchestrator driver."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from toolplan.planners.base import RunResult
    from toolplan.planners.plan import Plan
    from toolplan.trace import ExecutionTrace


class RunOutcome(str, enum.Enum):
    """How a strategy run ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class StrategyReport:
    """What the driver observed for one strategy.

    Frozen: reports are immutable records of what happened. Failed and
    cancelled reports carry the error and the partial trace, never an
    answer.
    """

    strategy: str
    outcome: RunOutcome
    trace: ExecutionTrace
    elapsed_seconds: float
    result: RunResult | None = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == RunOutcome.COMPLETED

    @property
    def final_answer(self) -> str | None:
        return self.result.final_answer if self.result is not None else None

    @property
    def plan(self) -> Plan | None:
        return self.result.plan if self.result is not None else None
