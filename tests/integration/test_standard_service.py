"""Integration tests for the standard service layer.

These tests exercise standard CRUD operations against a database via an
async SQLAlchemy session that is rolled back after every test.
"""

import uuid

import pytest

from standards_helper.schemas.standard import StandardCreate, StandardUpdate
from standards_helper.services import standard_service
from tests.conftest import make_standard_payload

pytestmark = pytest.mark.integration


# ── helpers ──────────────────────────────────────────────────────────────


def _standard_create(**overrides) -> StandardCreate:
    return StandardCreate(**make_standard_payload(**overrides))


# ── tests ────────────────────────────────────────────────────────────────


async def test_create_standard(db_session):
    """create_standard returns a Standard with UUID, defaults, and timestamps."""
    standard = await standard_service.create_standard(
        db_session, _standard_create(title="Small functions")
    )

    assert isinstance(standard.id, uuid.UUID)
    assert standard.title == "Small functions"
    assert standard.status == "active"
    assert standard.priority == "medium"
    assert standard.tags == ["typing"]
    assert standard.vector_id is None
    assert standard.created_at is not None


async def test_get_standard_not_found(db_session):
    assert await standard_service.get_standard(db_session, uuid.uuid4()) is None


async def test_list_standards_pagination(db_session):
    for i in range(4):
        await standard_service.create_standard(db_session, _standard_create(title=f"Rule {i}"))

    page1, total = await standard_service.list_standards(db_session, skip=0, limit=2)
    page2, _ = await standard_service.list_standards(db_session, skip=2, limit=2)

    assert total == 4
    assert len(page1) == 2
    assert len(page2) == 2
    assert {s.id for s in page1}.isdisjoint({s.id for s in page2})


async def test_list_standards_filters(db_session):
    await standard_service.create_standard(
        db_session, _standard_create(category="sql", priority="high")
    )
    await standard_service.create_standard(
        db_session, _standard_create(category="python", priority="low")
    )

    items, total = await standard_service.list_standards(db_session, category="sql")
    assert total == 1
    assert items[0].category == "sql"

    items, total = await standard_service.list_standards(db_session, priority="low")
    assert total == 1
    assert items[0].priority == "low"


async def test_list_by_category_and_priority(db_session):
    await standard_service.create_standard(
        db_session, _standard_create(title="B", category="go", priority="critical")
    )
    await standard_service.create_standard(
        db_session, _standard_create(title="A", category="go", priority="low")
    )

    by_category = await standard_service.list_by_category(db_session, "go")
    assert [s.title for s in by_category] == ["A", "B"]

    by_priority = await standard_service.list_by_priority(db_session, "critical")
    assert [s.title for s in by_priority] == ["B"]


async def test_search_by_title_or_description(db_session):
    await standard_service.create_standard(
        db_session, _standard_create(title="Logging Conventions", description="Use structured logs")
    )
    await standard_service.create_standard(
        db_session, _standard_create(title="Naming", description="Prefer LOGICAL names")
    )
    await standard_service.create_standard(
        db_session, _standard_create(title="Testing", description="Write unit tests")
    )

    results = await standard_service.search_by_title_or_description(db_session, "log")
    assert sorted(s.title for s in results) == ["Logging Conventions", "Naming"]


async def test_search_by_title_escapes_wildcards(db_session):
    await standard_service.create_standard(
        db_session, _standard_create(title="Coverage at 100%", description="Every branch")
    )
    await standard_service.create_standard(
        db_session, _standard_create(title="Coverage at 1000 lines", description="Large modules")
    )

    results = await standard_service.search_by_title_or_description(db_session, "100%")
    assert [s.title for s in results] == ["Coverage at 100%"]


async def test_update_ignores_null_for_required_columns(db_session):
    standard = await standard_service.create_standard(
        db_session, _standard_create(title="Keep me", status="deprecated", priority="high")
    )
    updated = await standard_service.update_standard(
        db_session, standard, StandardUpdate(status=None, priority=None, title=None)
    )

    assert updated.status == "deprecated"
    assert updated.priority == "high"
    assert updated.title == "Keep me"


async def test_update_standard(db_session):
    standard = await standard_service.create_standard(
        db_session, _standard_create(title="Old", category="python")
    )
    updated = await standard_service.update_standard(
        db_session, standard, StandardUpdate(title="New", priority="critical")
    )

    assert updated.title == "New"
    assert updated.priority == "critical"
    assert updated.category == "python"


async def test_tags(db_session):
    standard = await standard_service.create_standard(db_session, _standard_create(tags=[]))

    assert await standard_service.add_tag(db_session, standard, "style") is True
    assert await standard_service.add_tag(db_session, standard, "style") is False
    assert await standard_service.add_tag(db_session, standard, "  ") is False
    assert standard.tags == ["style"]

    assert await standard_service.remove_tag(db_session, standard, "missing") is False
    assert await standard_service.remove_tag(db_session, standard, "style") is True
    assert standard.tags == []


async def test_delete_standard(db_session):
    standard = await standard_service.create_standard(db_session, _standard_create())
    sid = standard.id

    await standard_service.delete_standard(db_session, standard)

    assert await standard_service.get_standard(db_session, sid) is None
