import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from models import models  # noqa: F401  registers tables on Base.metadata

from .get_db import Base, async_engine
from .settings import settings

logger = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")

    if settings.AUTO_CREATE_TABLES:
        try:
            async with async_engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables ensured.")
        except Exception:
            logger.exception("Failed to create database tables")

    if not settings.EMAIL_SERVER:
        logger.warning("EMAIL_SERVER is not set; reference emails will not be delivered.")

    logger.info("Application startup complete.")

    yield

    try:
        await async_engine.dispose()
    except Exception:
        logger.exception("Failed to dispose database engine")
