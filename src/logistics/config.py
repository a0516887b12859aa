"""Access to the ``[custom]`` settings of the logistics domain configuration."""

from logistics.domain import logistics

DEFAULTS = {
    "LOCATION_MIN_INTERVAL_SECONDS": 5,
    "FIX_TIMEOUT_SECONDS": 15,
    "HIGH_ACCURACY": True,
    "DEFAULT_DELIVERY_FEE": 500,
    "AVERAGE_SPEED_KMH": 30,
    "SCOPE_CLOSED_LIMIT": 500,
    "SCOPE_PAGE_SIZE": 200,
    "ADDRESS_PREVIEW_LENGTH": 50,
    "POSITION_LOG_LIMIT": 50,
    "FANOUT_CHANNEL": "logistics.deliveries.changed",
}


def setting(name: str, default=None):
    """Return a custom setting, falling back to the built-in default."""
    custom = logistics.config.get("custom") or {}
    if name in custom:
        return custom[name]
    if default is not None:
        return default
    return DEFAULTS.get(name)
