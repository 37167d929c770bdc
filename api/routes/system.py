"""
System routes for health checks and system status.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from core.config import settings

router = APIRouter(prefix="/system", tags=["System"])


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
        "concurrent_branches": settings.concurrent_branches,
    }
