"""CapabilityRegistry: name -> capability lookup shared by all strategies."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from toolplan.exceptions import (
    DuplicateCapabilityError,
    RegistryFrozenError,
    UnknownCapabilityError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from toolplan.toolkit.models import Capability

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """Holds the capabilities of one orchestration session.

    Registration order is preserved so tool declarations serialise the same
    way on every request. Once frozen the registry is read-only and safe to
    share between strategies.

    Usage::

        registry = CapabilityRegistry()
        registry.register(time_capability())
        registry.freeze()
        tool = registry.get("get_current_utc_time")
    """

    def __init__(self, capabilities: list[Capability] | None = None) -> None:
        self._capabilities: dict[str, Capability] = {}
        self._frozen = False
        for cap in capabilities or []:
            self.register(cap)

    def register(self, capability: Capability) -> None:
        """Add a capability.

        Raises:
            DuplicateCapabilityError: If the name is already registered.
            RegistryFrozenError: If the registry has been frozen.
        """
        if self._frozen:
            raise RegistryFrozenError(capability.name)
        if capability.name in self._capabilities:
            raise DuplicateCapabilityError(capability.name)
        self._capabilities[capability.name] = capability
        logger.debug("Registered capability %s", capability.name)

    def get(self, name: str) -> Capability:
        """Look up a capability by name.

        Raises:
            UnknownCapabilityError: If nothing is registered under ``name``.
        """
        try:
            return self._capabilities[name]
        except KeyError:
            raise UnknownCapabilityError(name) from None

    def list(self) -> list[Capability]:
        """All capabilities in registration order."""
        return list(self._capabilities.values())

    def names(self) -> list[str]:
        return list(self._capabilities)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def to_openai(self) -> list[dict]:
        """Tool declarations in OpenAI function-calling format."""
        return [cap.to_openai() for cap in self._capabilities.values()]

    def describe(self) -> str:
        """Plain-text manual of the registered capabilities, one per line."""
        return "\n".join(
            f"- {cap.signature()}: {cap.description}"
            for cap in self._capabilities.values()
        )

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)

    def __iter__(self) -> Iterator[Capability]:
        return iter(self.list())
