from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from standards_helper.api.deps import get_db, get_vector_store
from standards_helper.core.config import get_settings
from standards_helper.schemas.health import HealthResponse, StatusResponse
from standards_helper.storage.vector_store import VectorStore

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    vector_store: VectorStore = Depends(get_vector_store),
) -> HealthResponse:
    settings = get_settings()
    try:
        await db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception:
        db_status = "disconnected"

    vector_status = "connected" if await vector_store.health_check() else "unavailable"

    # The index is optional: search degrades to keyword matching without it
    healthy = db_status == "connected"
    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        database=db_status,
        vector_store=vector_status,
        version=settings.app_version,
    )


@router.get("/status", response_model=StatusResponse)
async def liveness() -> StatusResponse:
    return StatusResponse(status="ok")
