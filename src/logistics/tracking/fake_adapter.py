"""Fake positioning adapter — fixes are pushed by the test or the simulator.

Nothing happens on its own: ``emit_fix`` and ``emit_error`` deliver to every
open watch, and ``expire`` plays the part of the fix-acquisition timeout.
"""

from uuid import uuid4

from logistics.tracking.port import (
    ErrorCallback,
    Fix,
    FixCallback,
    PositioningError,
    PositioningErrorCode,
    PositioningPort,
    WatchOptions,
)


class FakePositioning(PositioningPort):
    def __init__(self):
        self._watches: dict[str, tuple[FixCallback, ErrorCallback, WatchOptions]] = {}
        self.permission_granted = True

    def configure(self, permission_granted: bool = True):
        """Configure the fake for testing."""
        self.permission_granted = permission_granted

    def watch(self, on_fix: FixCallback, on_error: ErrorCallback, options: WatchOptions) -> str:
        watch_id = f"watch-{uuid4().hex[:8]}"
        self._watches[watch_id] = (on_fix, on_error, options)
        if not self.permission_granted:
            self._fail(watch_id, PositioningError(PositioningErrorCode.PERMISSION_DENIED, "Location permission denied"))
        return watch_id

    def clear_watch(self, watch_id: str) -> None:
        self._watches.pop(watch_id, None)

    @property
    def active_watches(self) -> list[str]:
        return list(self._watches)

    def options_for(self, watch_id: str) -> WatchOptions:
        return self._watches[watch_id][2]

    def emit_fix(self, latitude: float, longitude: float, accuracy: float | None = None, captured_at=None) -> None:
        if captured_at is None:
            fix = Fix(latitude=latitude, longitude=longitude, accuracy=accuracy)
        else:
            fix = Fix(latitude=latitude, longitude=longitude, accuracy=accuracy, captured_at=captured_at)
        for on_fix, _, _ in list(self._watches.values()):
            on_fix(fix)

    def emit_error(self, code: PositioningErrorCode, message: str | None = None) -> None:
        for watch_id in list(self._watches):
            self._fail(watch_id, PositioningError(code, message))

    def expire(self) -> None:
        """Simulate no fix arriving within the watch timeout."""
        for watch_id, (_, _, options) in list(self._watches.items()):
            self._fail(
                watch_id,
                PositioningError(
                    PositioningErrorCode.TIMEOUT,
                    f"No position fix within {options.timeout_seconds:g}s",
                ),
            )

    def _fail(self, watch_id: str, error: PositioningError) -> None:
        entry = self._watches.get(watch_id)
        if entry is not None:
            entry[1](error)
