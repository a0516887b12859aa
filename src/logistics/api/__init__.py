"""Logistics domain API package."""

from logistics.api.routes import delivery_router, driver_router

__all__ = ["delivery_router", "driver_router"]
