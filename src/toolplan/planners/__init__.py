"""Planning strategies: stepwise, template plan compiler, and auto-invoke."""

from toolplan.planners.auto_invoke import AutoInvokePlanner
from toolplan.planners.base import PlanningStrategy, RunResult
from toolplan.planners.plan import Plan, PlanStep, parse_plan, validate_plan
from toolplan.planners.stepwise import StepRecord, StepState, StepwiseConfig, StepwisePlanner
from toolplan.planners.template import TemplatePlanner

__all__ = [
    "PlanningStrategy",
    "RunResult",
    "StepwisePlanner",
    "StepwiseConfig",
    "StepState",
    "StepRecord",
    "TemplatePlanner",
    "Plan",
    "PlanStep",
    "parse_plan",
    "validate_plan",
    "AutoInvokePlanner",
]
