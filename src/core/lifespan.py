import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from core.config import settings
from model.database import create_db_and_tables
from processor.async_runner import create_executor
from service.artifact_store import ArtifactStore
from service.janitor import Janitor
from utility.logger import setup_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    # === 시작 ===
    setup_logger(settings.LOG_LEVEL)
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION}")

    create_db_and_tables()
    logger.info(f"Database ready ({settings.DATABASE_URL})")

    store = ArtifactStore(settings.STORAGE_DIR)
    logger.info(f"Artifact storage: {store.root}")

    executor = create_executor(settings.TRANSFORM_WORKERS)

    app.state.settings = settings
    app.state.store = store
    app.state.executor = executor

    # Janitor는 앱 수명에 묶인 태스크. 종료 시 cancel.
    janitor_task = None
    if settings.JANITOR_ENABLED:
        janitor = Janitor(store, settings.retention, settings.sweep_interval)
        janitor_task = asyncio.create_task(janitor.run(), name="janitor")

    yield

    # === 종료 ===
    logger.info("Shutting down")
    if janitor_task is not None:
        janitor_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await janitor_task
    executor.shutdown(wait=True, cancel_futures=True)
