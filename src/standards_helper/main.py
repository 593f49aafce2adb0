import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from standards_helper.api.deps import get_embedding_generator, get_search_service, get_vector_store
from standards_helper.api.v1.router import api_v1_router
from standards_helper.core.config import get_settings
from standards_helper.core.database import engine
from standards_helper.core.logging import configure_logging
from standards_helper.models import Base

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Startup
    settings = get_settings()
    if settings.database_auto_create:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    search = get_search_service(get_vector_store(), get_embedding_generator())
    try:
        await search.ensure_collection()
    except Exception as e:
        logger.error("Could not provision collection '%s': %s", search.collection, e)
    yield
    # Shutdown
    await engine.dispose()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.include_router(api_v1_router, prefix="/api/v1")
    return app
