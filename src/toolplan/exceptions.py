"""Toolplan exception hierarchy.

All toolplan-specific exceptions inherit from ToolplanError.
"""

from __future__ import annotations


class ToolplanError(Exception):
    """Base exception for all toolplan errors."""


# ---------------------------------------------------------------------------
# Capability registry / tool-call bridge
# ---------------------------------------------------------------------------


class CapabilityError(ToolplanError):
    """Base for registry and binding errors (programmer errors, never retried)."""


class DuplicateCapabilityError(CapabilityError):
    """Raised when a capability name is registered twice."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Capability already registered: {name}")


class UnknownCapabilityError(CapabilityError):
    """Raised when a capability lookup fails."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown capability: {name}")


class ArgumentBindingError(CapabilityError):
    """Raised when tool-call arguments do not fit a capability's parameters."""

    def __init__(self, capability: str, reason: str) -> None:
        self.capability = capability
        self.reason = reason
        super().__init__(f"Cannot bind arguments for '{capability}': {reason}")


class RegistryFrozenError(CapabilityError):
    """Raised when registering into a registry that is already in use."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Cannot register '{name}': registry is frozen for the current session"
        )


class TraceIntegrityError(ToolplanError):
    """Raised when a message would break the execution trace ordering rules."""


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------


class LlmServiceError(ToolplanError):
    """Transport, auth or protocol failure talking to the chat service."""


class LlmAuthError(LlmServiceError):
    """Authentication failed (401/403)."""


class LlmResponseError(LlmServiceError):
    """Unexpected response format from the chat service."""


class WeatherServiceError(ToolplanError):
    """The weather source failed or answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ImageGenerationError(ToolplanError):
    """The image generation service failed to produce an image."""


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


class PlanningError(ToolplanError):
    """Base for errors raised by planning strategies."""


class PlanParseError(PlanningError):
    """Raised when a compiled plan is not well-formed.

    Attributes:
        raw: The raw plan text returned by the model, when available.
    """

    def __init__(self, message: str, raw: str | None = None) -> None:
        self.raw = raw
        super().__init__(message)


class PlannerExhaustedError(PlanningError):
    """The stepwise planner ran out of steps or time before a final answer."""

    def __init__(self, steps: int, reason: str) -> None:
        self.steps = steps
        self.reason = reason
        super().__init__(
            f"Planner exhausted after {steps} tool-call step(s): {reason}"
        )


class RunCancelledError(ToolplanError):
    """Raised at a suspension point once the run's cancellation token fires."""

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        msg = "Run cancelled"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ConfigError(ToolplanError):
    """Missing or invalid configuration. Raised at startup only."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__(
            "Invalid configuration:\n" + "\n".join(f"  - {p}" for p in problems)
        )
