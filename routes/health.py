from fastapi import APIRouter, Request

from config import RATE_LIMIT_DEFAULT
from database import check_database
from services.broadcast import room_manager
from .limiter import limiter

router = APIRouter(tags=["Health"])


@router.get("/")
@limiter.limit(RATE_LIMIT_DEFAULT)
async def root(request: Request):
    return {
        "status": "online",
        "message": "Food Ordering API is running",
        "version": "1.0.0"
    }


@router.get("/health")
@limiter.limit(RATE_LIMIT_DEFAULT)
async def health_check(request: Request):
    """Liveness plus database reachability and open tracking sockets"""
    database_ok = check_database()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unreachable",
        "tracking_connections": len(room_manager.active_connections),
    }
