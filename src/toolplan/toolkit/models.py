"""Capability descriptors exposed to the model as callable tools.

Frozen dataclasses describing a capability's name, description and typed
parameter list. The tool schema sent to the model is derived from these
descriptors.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from toolplan.exceptions import ArgumentBindingError

if TYPE_CHECKING:
    from collections.abc import Callable

    from toolplan.cancellation import CancellationToken

logger = logging.getLogger(__name__)

ParameterType = Literal["string", "integer", "number", "boolean"]

_RESERVED_PARAMETERS = frozenset({"cancel"})


def _type_matches(expected: str, value: Any) -> bool:
    # bool is a subclass of int; keep them apart
    if expected == "string":
        return isinstance(value, str)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return False


@dataclass(frozen=True)
class Parameter:
    """One declared parameter of a capability.

    Attributes:
        name: Argument name as the model must send it.
        type: JSON Schema primitive type.
        description: Optional hint for the model.
        required: Whether the argument must be supplied.
    """

    name: str
    type: ParameterType = "string"
    description: str = ""
    required: bool = True

    def __post_init__(self) -> None:
        if not self.name.isidentifier():
            raise ValueError(f"Invalid parameter name: {self.name!r}")
        if self.name in _RESERVED_PARAMETERS:
            raise ValueError(f"Parameter name {self.name!r} is reserved")
        if self.type not in ("string", "integer", "number", "boolean"):
            raise ValueError(f"Unsupported parameter type: {self.type!r}")

    def accepts(self, value: Any) -> bool:
        """Whether a non-null value has this parameter's declared type."""
        return _type_matches(self.type, value)

    def to_schema(self) -> dict:
        schema: dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        return schema


@dataclass(frozen=True)
class Capability:
    """A named, described function the model may invoke.

    The handler is called with the bound arguments as keyword arguments plus
    a ``cancel`` keyword carrying the run's cancellation token. It may
    return a string or an awaitable producing one.

    Attributes:
        name: Unique tool name (e.g. "get_current_utc_time").
        description: What the tool does; the model selects tools by it.
        parameters: Ordered parameter declarations.
        handler: Callable that executes the capability.
    """

    name: str
    description: str
    handler: Callable[..., object]
    parameters: tuple[Parameter, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", tuple(self.parameters))
        if not self.name or not self.name.strip():
            raise ValueError("Capability name must be non-empty")
        if not self.description or not self.description.strip():
            raise ValueError(f"Capability '{self.name}' needs a description")
        names = [p.name for p in self.parameters]
        if len(set(names)) != len(names):
            raise ValueError(f"Capability '{self.name}' has duplicate parameter names")

    def parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {p.name: p.to_schema() for p in self.parameters},
            "required": [p.name for p in self.parameters if p.required],
        }

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }

    def signature(self) -> str:
        """Short human-readable signature, e.g. ``get_weather_for_city(city_name: string)``."""
        params = ", ".join(
            f"{p.name}: {p.type}" + ("" if p.required else " = None")
            for p in self.parameters
        )
        return f"{self.name}({params})"

    def bind(self, arguments: dict | None) -> dict[str, Any]:
        """Match ``arguments`` against the declared parameters.

        Raises:
            ArgumentBindingError: On unexpected or missing arguments, or a
                value whose type does not match its declaration.
        """
        arguments = dict(arguments or {})
        declared = {p.name: p for p in self.parameters}

        unexpected = sorted(set(arguments) - set(declared))
        if unexpected:
            raise ArgumentBindingError(
                self.name, f"unexpected argument(s): {', '.join(unexpected)}"
            )

        bound: dict[str, Any] = {}
        for param in self.parameters:
            if param.name not in arguments or arguments[param.name] is None:
                if param.required:
                    raise ArgumentBindingError(
                        self.name, f"missing required argument '{param.name}'"
                    )
                continue
            value = arguments[param.name]
            if not param.accepts(value):
                raise ArgumentBindingError(
                    self.name,
                    f"argument '{param.name}' expects {param.type}, "
                    f"got {type(value).__name__}",
                )
            bound[param.name] = value
        return bound

    async def invoke(
        self, arguments: dict | None = None, cancel: CancellationToken | None = None
    ) -> str:
        """Bind ``arguments`` and run the handler, awaiting it if needed."""
        bound = self.bind(arguments)
        result = self.handler(cancel=cancel, **bound)
        if inspect.isawaitable(result):
            result = await result
        return str(result)
