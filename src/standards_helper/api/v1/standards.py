import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from standards_helper.api.deps import get_db, get_search_service
from standards_helper.core.exceptions import BadRequestError, IndexingUnavailableError, NotFoundError
from standards_helper.models.standard import Standard
from standards_helper.schemas import PaginatedResponse
from standards_helper.schemas.standard import (
    ReindexResult,
    SearchResults,
    StandardCreate,
    StandardPriority,
    StandardRead,
    StandardStatus,
    StandardUpdate,
    TagRequest,
)
from standards_helper.services import standard_service
from standards_helper.services.search_service import StandardSearchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/standards", tags=["standards"])

# Fields carried by the index record, in its text or its metadata
_INDEXED_FIELDS = ("title", "description", "tags", "category", "priority")


async def _get_or_404(db: AsyncSession, standard_id: uuid.UUID) -> Standard:
    standard = await standard_service.get_standard(db, standard_id)
    if not standard:
        raise NotFoundError("Standard", str(standard_id))
    return standard


@router.post("/", response_model=StandardRead, status_code=status.HTTP_201_CREATED)
async def create_standard(
    data: StandardCreate,
    db: AsyncSession = Depends(get_db),
    search: StandardSearchService = Depends(get_search_service),
) -> StandardRead:
    standard = await search.create_standard(db, data)
    return StandardRead.model_validate(standard)


@router.get("/", response_model=PaginatedResponse[StandardRead])
async def list_standards(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    category: str | None = Query(None),
    status_filter: StandardStatus | None = Query(None, alias="status"),
    priority: StandardPriority | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[StandardRead]:
    items, total = await standard_service.list_standards(
        db, skip, limit, category=category, status=status_filter, priority=priority
    )
    return PaginatedResponse(
        items=[StandardRead.model_validate(s) for s in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/search", response_model=SearchResults)
async def search_standards(
    query: str = Query(""),
    category: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    search: StandardSearchService = Depends(get_search_service),
) -> SearchResults:
    """Semantic search; degrades to keyword matching if the index is down."""
    if not query.strip():
        raise BadRequestError("Search query cannot be empty")

    results = await search.search(db, query)
    if category:
        results = [s for s in results if s.category.lower() == category.lower()]

    return SearchResults(
        query=query,
        items=[StandardRead.model_validate(s) for s in results],
        total=len(results),
    )


@router.get("/category/{category}", response_model=list[StandardRead])
async def list_standards_by_category(
    category: str,
    db: AsyncSession = Depends(get_db),
) -> list[StandardRead]:
    standards = await standard_service.list_by_category(db, category)
    return [StandardRead.model_validate(s) for s in standards]


@router.get("/priority/{priority}", response_model=list[StandardRead])
async def list_standards_by_priority(
    priority: StandardPriority,
    db: AsyncSession = Depends(get_db),
) -> list[StandardRead]:
    standards = await standard_service.list_by_priority(db, priority)
    return [StandardRead.model_validate(s) for s in standards]


@router.post("/reindex", response_model=ReindexResult)
async def reindex_standards(
    db: AsyncSession = Depends(get_db),
    search: StandardSearchService = Depends(get_search_service),
) -> ReindexResult:
    """Drop and rebuild the embedding collection from the database."""
    try:
        indexed = await search.reindex_all(db)
    except Exception as e:
        logger.error("Reindex failed: %s", e)
        raise IndexingUnavailableError(str(e)) from e
    _, total = await standard_service.list_standards(db, limit=1)
    return ReindexResult(indexed=indexed, total=total)


@router.get("/{standard_id}", response_model=StandardRead)
async def get_standard(
    standard_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> StandardRead:
    standard = await _get_or_404(db, standard_id)
    return StandardRead.model_validate(standard)


@router.patch("/{standard_id}", response_model=StandardRead)
async def update_standard(
    standard_id: uuid.UUID,
    data: StandardUpdate,
    db: AsyncSession = Depends(get_db),
    search: StandardSearchService = Depends(get_search_service),
) -> StandardRead:
    standard = await _get_or_404(db, standard_id)
    updated = await standard_service.update_standard(db, standard, data)

    # Re-embed if anything stored in the index changed
    changed_fields = data.model_dump(exclude_unset=True)
    if any(f in changed_fields for f in _INDEXED_FIELDS):
        await search.reindex_standard(db, updated)

    return StandardRead.model_validate(updated)


@router.post("/{standard_id}/tags", response_model=StandardRead)
async def add_tag(
    standard_id: uuid.UUID,
    data: TagRequest,
    db: AsyncSession = Depends(get_db),
    search: StandardSearchService = Depends(get_search_service),
) -> StandardRead:
    standard = await _get_or_404(db, standard_id)
    if await standard_service.add_tag(db, standard, data.tag):
        await search.reindex_standard(db, standard)
    return StandardRead.model_validate(standard)


@router.delete("/{standard_id}/tags/{tag}", response_model=StandardRead)
async def remove_tag(
    standard_id: uuid.UUID,
    tag: str,
    db: AsyncSession = Depends(get_db),
    search: StandardSearchService = Depends(get_search_service),
) -> StandardRead:
    standard = await _get_or_404(db, standard_id)
    if await standard_service.remove_tag(db, standard, tag):
        await search.reindex_standard(db, standard)
    return StandardRead.model_validate(standard)


@router.post("/{standard_id}/embed", response_model=StandardRead)
async def embed_standard(
    standard_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    search: StandardSearchService = Depends(get_search_service),
) -> StandardRead:
    """Regenerate and store the embedding for a standard."""
    standard = await _get_or_404(db, standard_id)
    if not await search.reindex_standard(db, standard):
        raise IndexingUnavailableError(f"Embedding standard '{standard_id}' failed")
    return StandardRead.model_validate(standard)


@router.delete("/{standard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_standard(
    standard_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    search: StandardSearchService = Depends(get_search_service),
) -> None:
    standard = await _get_or_404(db, standard_id)
    await search.delete_standard(db, standard)
