"""Current UTC time capability."""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime
from typing import TYPE_CHECKING

from toolplan.toolkit.models import Capability

if TYPE_CHECKING:
    from collections.abc import Callable


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimePlugin:
    """Reports the current time in UTC as an RFC 1123 string."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow

    def get_current_utc_time(self, cancel: object = None) -> str:
        # e.g. "Wed, 01 Jan 2025 00:00:00 GMT"
        return format_datetime(self._clock().astimezone(timezone.utc), usegmt=True)

    def capability(self) -> Capability:
        return Capability(
            name="get_current_utc_time",
            description="Retrieves the current time in UTC.",
            handler=self.get_current_utc_time,
        )
