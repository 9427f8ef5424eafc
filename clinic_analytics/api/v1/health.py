from fastapi import APIRouter

from clinic_analytics.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check"""
    settings = get_settings()
    return {"status": "healthy", "service": "clinic-analytics", "environment": settings.ENVIRONMENT}
