from fastapi import APIRouter

from clinic_analytics.api.v1 import experiments, health, schedule

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(experiments.router, prefix="/experiments", tags=["experiments"])
api_router.include_router(schedule.router, prefix="/schedule", tags=["schedule"])
