"""Location reporter — device-side loop that streams a driver's position.

The loop is driven entirely by positioning callbacks: it waits between fixes
and wakes on each fix or error. Fixes closer together than the minimum
interval are dropped. Every accepted fix is published as a
``RecordDriverFix`` command; a failed publish is logged and the reporter
keeps going. A positioning error ends the session and is handed to the
driver; restarting is always an explicit ``start()``.
"""

from collections.abc import Callable
from threading import RLock

import structlog
from protean.utils.globals import current_domain

from logistics.config import setting
from logistics.domain import logistics
from logistics.driver.tracking import RecordDriverFix, StartTracking, StopTracking
from logistics.tracking import get_positioning
from logistics.tracking.port import Fix, PositioningError, PositioningPort, WatchOptions

logger = structlog.get_logger(__name__)


class LocationReporter:
    def __init__(
        self,
        driver_id: str,
        positioning: PositioningPort | None = None,
        on_error: Callable[[PositioningError], None] | None = None,
        min_interval_seconds: float | None = None,
        domain=None,
    ):
        self.driver_id = str(driver_id)
        self.positioning = positioning or get_positioning()
        self.on_error = on_error
        self.domain = domain or logistics
        if min_interval_seconds is None:
            min_interval_seconds = float(setting("LOCATION_MIN_INTERVAL_SECONDS"))
        self.min_interval_seconds = min_interval_seconds

        self.delivery_id: str | None = None
        self.last_error: PositioningError | None = None
        self.last_fix: Fix | None = None
        self.published = 0
        self.skipped = 0
        self.failed = 0

        self._watch_id: str | None = None
        self._last_published_at = None
        self._starting = False
        self._lock = RLock()

    @property
    def is_tracking(self) -> bool:
        return self._watch_id is not None

    def start(self, delivery_id: str | None = None) -> None:
        """Mark the driver as tracking and open a positioning watch.

        ``delivery_id`` pins the fixes to one delivery instead of letting the
        server pick the driver's in-transit delivery.
        """
        with self._lock:
            if self.is_tracking:
                return

            self._dispatch(StartTracking(driver_id=self.driver_id))
            self.delivery_id = str(delivery_id) if delivery_id else None
            self.last_error = None
            self._last_published_at = None

            options = WatchOptions(
                high_accuracy=bool(setting("HIGH_ACCURACY")),
                timeout_seconds=float(setting("FIX_TIMEOUT_SECONDS")),
            )
            # An adapter may fail the watch before returning (permission denied)
            self._starting = True
            try:
                watch_id = self.positioning.watch(self._on_fix, self._on_error, options)
            finally:
                self._starting = False

            if self.last_error is not None:
                self.positioning.clear_watch(watch_id)
                return
            self._watch_id = watch_id
            logger.info("tracking_started", driver_id=self.driver_id, delivery_id=self.delivery_id)

    def stop(self, reason: str | None = None) -> None:
        """Close the watch and clear the tracking flag. Idempotent."""
        with self._lock:
            if not self.is_tracking:
                return
            self._close_watch()
            self._publish(StopTracking(driver_id=self.driver_id, reason=reason or "stopped by driver"))
            logger.info("tracking_stopped", driver_id=self.driver_id, reason=reason)

    # -------------------------------------------------------------------
    # Positioning callbacks
    # -------------------------------------------------------------------
    def _on_fix(self, fix: Fix) -> None:
        with self._lock:
            if not self.is_tracking:
                return
            if self._too_soon(fix):
                self.skipped += 1
                return

            self.last_fix = fix
            self._last_published_at = fix.captured_at
            ok = self._publish(
                RecordDriverFix(
                    driver_id=self.driver_id,
                    latitude=fix.latitude,
                    longitude=fix.longitude,
                    accuracy=fix.accuracy,
                    captured_at=fix.captured_at,
                    delivery_id=self.delivery_id,
                )
            )
            if ok:
                self.published += 1

    def _on_error(self, error: PositioningError) -> None:
        with self._lock:
            if not (self.is_tracking or self._starting):
                return
            self.last_error = error
            self._close_watch()
            self._publish(StopTracking(driver_id=self.driver_id, reason=error.code.value))
            logger.warning(
                "positioning_failed",
                driver_id=self.driver_id,
                code=error.code.value,
                message=error.message,
            )

        if self.on_error is not None:
            self.on_error(error)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _too_soon(self, fix: Fix) -> bool:
        if self._last_published_at is None:
            return False
        elapsed = (fix.captured_at - self._last_published_at).total_seconds()
        return elapsed < self.min_interval_seconds

    def _close_watch(self) -> None:
        if self._watch_id is not None:
            self.positioning.clear_watch(self._watch_id)
            self._watch_id = None

    def _dispatch(self, command):
        with self.domain.domain_context():
            return current_domain.process(command, asynchronous=False)

    def _publish(self, command) -> bool:
        try:
            self._dispatch(command)
        except Exception:
            self.failed += 1
            logger.exception(
                "location_publish_failed",
                driver_id=self.driver_id,
                command=command.__class__.__name__,
            )
            return False
        return True
