from fastapi import APIRouter
from .auth import router as auth_router
from .orders import router as orders_router
from .tracking import router as tracking_router
from .notifications import router as notifications_router
from .drivers import router as drivers_router
from .realtime import router as realtime_router
from .health import router as health_router

# Create main API router
api_router = APIRouter()

api_router.include_router(auth_router, tags=["Authentication"])
api_router.include_router(orders_router, tags=["Orders"])
api_router.include_router(tracking_router, tags=["Tracking"])
api_router.include_router(notifications_router, tags=["Notifications"])
api_router.include_router(drivers_router, tags=["Drivers"])
api_router.include_router(realtime_router, tags=["Realtime"])
api_router.include_router(health_router, tags=["Health"])

__all__ = ["api_router"]
