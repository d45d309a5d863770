from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI
from loguru import logger

from core.config import settings
from service.generation_client import OpenAIImageEditClient
from service.generation_queue import GenerationQueue
from service.image_service import run_generation
from store.factory import create_store
from utility.logger import setup_logger


def create_generator(app_settings):
    return OpenAIImageEditClient(
        api_key=app_settings.OPENAI_API_KEY,
        model=app_settings.OPENAI_IMAGE_MODEL,
        size=app_settings.image_size_param,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # === 시작 ===
    setup_logger(settings.LOG_LEVEL)
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION}")

    store = create_store(settings)
    store.ping()
    logger.info(f"Store ready ({store.backend})")

    generator = create_generator(settings)
    if not settings.generation_configured:
        logger.warning("OPENAI_API_KEY is not set; submissions will end in a configuration error")

    queue = GenerationQueue(
        partial(run_generation, store, generator),
        workers=settings.GENERATION_WORKERS,
    )
    await queue.start()

    app.state.settings = settings
    app.state.store = store
    app.state.queue = queue

    yield

    # === 종료 ===
    logger.info("Shutting down")
    await queue.stop()
    close = getattr(generator, "close", None)
    if close is not None:
        await close()
    store.close()
