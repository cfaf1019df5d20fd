from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from campushire.core.config import settings
from campushire.core.database import health_check

router = APIRouter()


@router.get("")
async def get_health():
    """Liveness plus a MongoDB round trip"""
    database_ok = await health_check()
    body = {
        "success": database_ok,
        "data": {
            "status": "healthy" if database_ok else "unhealthy",
            "service": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "database": "connected" if database_ok else "unavailable",
            "timestamp": datetime.utcnow().isoformat(),
        },
    }
    return JSONResponse(status_code=200 if database_ok else 503, content=body)
