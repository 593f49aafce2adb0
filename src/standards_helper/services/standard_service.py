import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from standards_helper.models.standard import Standard
from standards_helper.schemas.standard import StandardCreate, StandardUpdate


async def create_standard(db: AsyncSession, data: StandardCreate) -> Standard:
    standard = Standard(**data.model_dump())
    db.add(standard)
    await db.flush()
    await db.refresh(standard)
    return standard


async def get_standard(db: AsyncSession, standard_id: uuid.UUID) -> Standard | None:
    result = await db.execute(select(Standard).where(Standard.id == standard_id))
    return result.scalar_one_or_none()


async def list_standards(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 20,
    category: str | None = None,
    status: str | None = None,
    priority: str | None = None,
) -> tuple[list[Standard], int]:
    query = select(Standard)
    count_query = select(func.count()).select_from(Standard)

    if category:
        query = query.where(Standard.category == category)
        count_query = count_query.where(Standard.category == category)
    if status:
        query = query.where(Standard.status == status)
        count_query = count_query.where(Standard.status == status)
    if priority:
        query = query.where(Standard.priority == priority)
        count_query = count_query.where(Standard.priority == priority)

    total = (await db.execute(count_query)).scalar_one()
    results = await db.execute(
        query.offset(skip).limit(limit).order_by(Standard.created_at.desc(), Standard.title)
    )
    return list(results.scalars().all()), total


async def list_all_standards(db: AsyncSession) -> list[Standard]:
    results = await db.execute(select(Standard).order_by(Standard.created_at.desc(), Standard.title))
    return list(results.scalars().all())


async def list_by_category(db: AsyncSession, category: str) -> list[Standard]:
    results = await db.execute(
        select(Standard).where(Standard.category == category).order_by(Standard.title)
    )
    return list(results.scalars().all())


async def list_by_priority(db: AsyncSession, priority: str) -> list[Standard]:
    results = await db.execute(
        select(Standard).where(Standard.priority == priority).order_by(Standard.title)
    )
    return list(results.scalars().all())


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def search_by_title_or_description(db: AsyncSession, term: str) -> list[Standard]:
    """Case-insensitive substring match over title and description.

    ``%`` and ``_`` in the term match literally.
    """
    pattern = f"%{_escape_like(term.strip())}%"
    results = await db.execute(
        select(Standard)
        .where(
            or_(
                Standard.title.ilike(pattern, escape="\\"),
                Standard.description.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Standard.title)
    )
    return list(results.scalars().all())


# Columns that are NOT NULL; an explicit null in a PATCH leaves them unchanged
_NON_NULLABLE_FIELDS = ("title", "description", "category", "status", "priority", "tags")


async def update_standard(db: AsyncSession, standard: Standard, data: StandardUpdate) -> Standard:
    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field in _NON_NULLABLE_FIELDS:
            continue
        setattr(standard, field, value)
    await db.flush()
    await db.refresh(standard)
    return standard


async def add_tag(db: AsyncSession, standard: Standard, tag: str) -> bool:
    added = standard.add_tag(tag)
    if added:
        await db.flush()
        await db.refresh(standard)
    return added


async def remove_tag(db: AsyncSession, standard: Standard, tag: str) -> bool:
    removed = standard.remove_tag(tag)
    if removed:
        await db.flush()
        await db.refresh(standard)
    return removed


async def set_vector_id(db: AsyncSession, standard: Standard, vector_id: str | None) -> None:
    standard.vector_id = vector_id
    await db.flush()
    await db.refresh(standard)


async def delete_standard(db: AsyncSession, standard: Standard) -> None:
    await db.delete(standard)
    await db.flush()
