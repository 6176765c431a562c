"""toolplan: goal-directed orchestration of an LLM over callable tools.

Reaches the same goal three ways -- a stepwise function-calling planner, a
template plan compiler, and single-turn auto-invoke -- and records the
conversation behind each answer.
"""

from toolplan._version import __version__

# Cancellation
from toolplan.cancellation import CancellationToken

# Errors
from toolplan.exceptions import (
    ArgumentBindingError,
    CapabilityError,
    ConfigError,
    DuplicateCapabilityError,
    ImageGenerationError,
    LlmAuthError,
    LlmResponseError,
    LlmServiceError,
    PlannerExhaustedError,
    PlanningError,
    PlanParseError,
    RegistryFrozenError,
    RunCancelledError,
    ToolplanError,
    TraceIntegrityError,
    UnknownCapabilityError,
    WeatherServiceError,
)

# Trace
from toolplan.trace import ExecutionTrace, Message, Role, ToolCall

# Capabilities
from toolplan.toolkit import Capability, CapabilityRegistry, Parameter, ToolCallBridge

# LLM services
from toolplan.llm import ChatClient, ChatService, ImageClient, ImageService, SamplingOptions

# Strategies
from toolplan.planners import (
    AutoInvokePlanner,
    Plan,
    PlanStep,
    PlanningStrategy,
    RunResult,
    StepwiseConfig,
    StepwisePlanner,
    TemplatePlanner,
)

# Driver
from toolplan.orchestrator import (
    DEFAULT_GOAL,
    DriverConfig,
    OrchestratorDriver,
    RunOutcome,
    StrategyReport,
    default_strategies,
)

__all__ = [
    "__version__",
    "CancellationToken",
    # Errors
    "ToolplanError",
    "CapabilityError",
    "DuplicateCapabilityError",
    "UnknownCapabilityError",
    "ArgumentBindingError",
    "RegistryFrozenError",
    "TraceIntegrityError",
    "LlmServiceError",
    "LlmAuthError",
    "LlmResponseError",
    "WeatherServiceError",
    "ImageGenerationError",
    "PlanningError",
    "PlanParseError",
    "PlannerExhaustedError",
    "RunCancelledError",
    "ConfigError",
    # Trace
    "ExecutionTrace",
    "Message",
    "Role",
    "ToolCall",
    # Capabilities
    "Capability",
    "CapabilityRegistry",
    "Parameter",
    "ToolCallBridge",
    # LLM
    "ChatClient",
    "ChatService",
    "ImageClient",
    "ImageService",
    "SamplingOptions",
    # Strategies
    "PlanningStrategy",
    "RunResult",
    "StepwisePlanner",
    "StepwiseConfig",
    "TemplatePlanner",
    "Plan",
    "PlanStep",
    "AutoInvokePlanner",
    # Driver
    "DEFAULT_GOAL",
    "DriverConfig",
    "OrchestratorDriver",
    "RunOutcome",
    "StrategyReport",
    "default_strategies",
]
