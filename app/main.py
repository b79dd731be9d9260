from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import init_db
from app.core.logging import configure_logging
from app.core.redis import redis_cache

logger = structlog.get_logger(__name__)


class PublicMediaFiles(StaticFiles):
    """Serves stored media with the long-lived public cache header."""

    async def get_response(self, path, scope):
        response = await super().get_response(path, scope)
        if response.status_code == 200:
            response.headers["Cache-Control"] = settings.MEDIA_CACHE_CONTROL
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(
        "Starting application",
        project=settings.PROJECT_NAME,
        environment=settings.ENVIRONMENT,
    )
    Path(settings.UPLOAD_PATH).mkdir(parents=True, exist_ok=True)
    await init_db()
    yield
    await redis_cache.close()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url="/api/v1/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")

app.mount(
    "/media",
    PublicMediaFiles(directory=settings.UPLOAD_PATH, check_dir=False),
    name="media",
)


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
    }
