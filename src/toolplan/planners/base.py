"""Strategy protocol and run result shared by the planning strategies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from toolplan.cancellation import CancellationToken
    from toolplan.planners.plan import Plan
    from toolplan.toolkit.registry import CapabilityRegistry
    from toolplan.trace import ExecutionTrace


@dataclass(frozen=True)
class RunResult:
    """Outcome of one successful strategy run.

    Frozen: the result is immutable once the run completes.

    Attributes:
        strategy: Name of the strategy that produced it.
        final_answer: The answer text. Never synthesised on failure.
        trace: The conversation that led to the answer.
        elapsed_seconds: Wall-clock duration of the run.
        plan: The compiled plan, for strategies that compile one.
    """

    strategy: str
    final_answer: str
    trace: ExecutionTrace
    elapsed_seconds: float
    plan: Plan | None = None


@runtime_checkable
class PlanningStrategy(Protocol):
    """A way of reaching a goal with the registered capabilities.

    ``run`` appends to ``trace`` when one is given, so the caller keeps the
    partial conversation if the run fails; otherwise a fresh trace is made.
    """

    name: str

    async def run(
        self,
        goal: str,
        registry: CapabilityRegistry,
        *,
        trace: ExecutionTrace | None = None,
        cancel: CancellationToken | None = None,
    ) -> RunResult:
        """Drive the goal to a final answer."""
        ...


def check_cancelled(cancel: CancellationToken | None) -> None:
    if cancel is not None:
        cancel.raise_if_cancelled()
