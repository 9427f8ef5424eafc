from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinic_analytics import __version__
from clinic_analytics.api.v1.router import api_router
from clinic_analytics.config import get_settings
from clinic_analytics.core.logging import configure_logging
from clinic_analytics.middleware import TelemetryMiddleware

settings = get_settings()
configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("startup", app=settings.APP_NAME, environment=settings.ENVIRONMENT)
    yield
    logger.info("shutdown", app=settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description="Appointment analytics and schedule optimization for clinic operations",
    version=__version__,
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
    lifespan=lifespan,
)

# CORS middleware
if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(TelemetryMiddleware)

# Include routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": __version__,
        "environment": settings.ENVIRONMENT,
    }


def run():
    import uvicorn

    uvicorn.run("clinic_analytics.main:app", host=settings.HOST, port=settings.PORT)
