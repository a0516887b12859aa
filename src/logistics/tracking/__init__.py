"""Positioning adapter selection."""

import os

_positioning_instance = None


def get_positioning():
    """Return the configured positioning adapter (singleton).

    Uses FakePositioning by default; select another with the
    POSITIONING_ADAPTER environment variable.
    """
    global _positioning_instance
    if _positioning_instance is None:
        adapter = os.environ.get("POSITIONING_ADAPTER", "fake")
        if adapter == "fake":
            from logistics.tracking.fake_adapter import FakePositioning

            _positioning_instance = FakePositioning()
        else:
            raise ValueError(f"Unknown positioning adapter: {adapter}")
    return _positioning_instance


def reset_positioning():
    """Reset the positioning singleton (useful for testing)."""
    global _positioning_instance
    _positioning_instance = None
