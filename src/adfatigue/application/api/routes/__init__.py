from adfatigue.application.api.routes.admin import router as admin_router
from adfatigue.application.api.routes.cache import router as cache_router
from adfatigue.application.api.routes.fatigue import router as fatigue_router
from adfatigue.application.api.routes.health import router as health_router

__all__ = ["admin_router", "cache_router", "fatigue_router", "health_router"]
