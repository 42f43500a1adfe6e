import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger
from tortoise.contrib.fastapi import RegisterTortoise

from app import settings
from app.cache import close_redis
from app.deps import close_http_clients
from app.errors import register_error_handlers
from app.routers.booking import router as bookings_router

TORTOISE_MODULES = {"models": ["app.models"]}


def configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    async with RegisterTortoise(
        app,
        db_url=settings.db_url,
        modules=TORTOISE_MODULES,
        generate_schemas=settings.generate_schemas,
    ):
        logger.info("bookings-ms started")
        yield
    await close_http_clients()
    await close_redis()
    logger.info("bookings-ms stopped")


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="StayWise bookings-ms", lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(bookings_router)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok", "service": "bookings-ms"}

    return app


app = create_app()
