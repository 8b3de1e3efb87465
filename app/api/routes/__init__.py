from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.weather import router as weather_router

__all__ = ["health_router", "weather_router"]
