"""Tests for the fake positioning adapter and adapter selection."""

import pytest
from logistics.tracking import get_positioning, reset_positioning
from logistics.tracking.fake_adapter import FakePositioning
from logistics.tracking.port import PositioningErrorCode, WatchOptions


def _recorder():
    fixes, errors = [], []
    return fixes, errors, fixes.append, errors.append


class TestFakePositioning:
    def test_fix_reaches_open_watch(self):
        fake = FakePositioning()
        fixes, errors, on_fix, on_error = _recorder()
        fake.watch(on_fix, on_error, WatchOptions())
        fake.emit_fix(1.0, 2.0, accuracy=5.0)
        assert len(fixes) == 1
        assert fixes[0].latitude == 1.0
        assert fixes[0].captured_at is not None

    def test_cleared_watch_receives_nothing(self):
        fake = FakePositioning()
        fixes, errors, on_fix, on_error = _recorder()
        watch_id = fake.watch(on_fix, on_error, WatchOptions())
        fake.clear_watch(watch_id)
        fake.emit_fix(1.0, 2.0)
        assert fixes == []
        assert fake.active_watches == []

    def test_expire_reports_timeout(self):
        fake = FakePositioning()
        fixes, errors, on_fix, on_error = _recorder()
        fake.watch(on_fix, on_error, WatchOptions(timeout_seconds=15))
        fake.expire()
        assert errors[0].code == PositioningErrorCode.TIMEOUT
        assert "15s" in errors[0].message

    def test_permission_denied_on_watch(self):
        fake = FakePositioning()
        fake.configure(permission_granted=False)
        fixes, errors, on_fix, on_error = _recorder()
        fake.watch(on_fix, on_error, WatchOptions())
        assert errors[0].code == PositioningErrorCode.PERMISSION_DENIED


class TestAdapterSelection:
    def test_default_is_fake_singleton(self):
        assert isinstance(get_positioning(), FakePositioning)
        assert get_positioning() is get_positioning()

    def test_unknown_adapter(self, monkeypatch):
        reset_positioning()
        monkeypatch.setenv("POSITIONING_ADAPTER", "satellite")
        with pytest.raises(ValueError):
            get_positioning()
        reset_positioning()
