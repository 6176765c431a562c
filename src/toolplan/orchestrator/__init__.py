"""Orchestrator package -- runs a goal through every planning strategy."""

from toolplan.orchestrator.driver import (
    DEFAULT_GOAL,
    DriverConfig,
    OrchestratorDriver,
    default_strategies,
)
from toolplan.orchestrator.models import RunOutcome, StrategyReport

__all__ = [
    "DEFAULT_GOAL",
    "DriverConfig",
    "OrchestratorDriver",
    "RunOutcome",
    "StrategyReport",
    "default_strategies",
]
