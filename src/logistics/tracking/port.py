"""Positioning port — abstract interface over the device positioning subsystem.

The reporter programs against this port; adapters (a real device SDK, the
fake used in development and tests) are swapped via configuration.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from logistics.shared.clock import utc_now


class PositioningErrorCode(Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"


class PositioningError(Exception):
    """The positioning subsystem could not deliver a fix."""

    def __init__(self, code: PositioningErrorCode, message: str | None = None):
        super().__init__(message or code.value)
        self.code = code
        self.message = message or code.value


@dataclass(frozen=True)
class Fix:
    """One position reading."""

    latitude: float
    longitude: float
    accuracy: float | None = None
    captured_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class WatchOptions:
    high_accuracy: bool = True
    timeout_seconds: float = 15.0
    maximum_age_seconds: float = 0.0


FixCallback = Callable[[Fix], None]
ErrorCallback = Callable[[PositioningError], None]


class PositioningPort(ABC):
    """Continuous position watch with a callback per fix and per error."""

    @abstractmethod
    def watch(self, on_fix: FixCallback, on_error: ErrorCallback, options: WatchOptions) -> str:
        """Start watching and return a watch id.

        ``on_error`` is invoked when no fix arrives within
        ``options.timeout_seconds``, when permission is denied, or when the
        signal is lost.
        """
        ...

    @abstractmethod
    def clear_watch(self, watch_id: str) -> None:
        """Stop a watch. Unknown ids are ignored."""
        ...
