"""
Health Check Endpoints
"""

from fastapi import APIRouter
from datetime import datetime

from hllstore import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": __version__,
    }
