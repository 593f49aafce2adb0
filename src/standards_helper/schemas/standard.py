import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StandardStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"
    DEPRECATED = "deprecated"


class StandardPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    """Strip tags, drop blanks and duplicates, keep first-seen order."""
    if tags is None:
        return None
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class StandardCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    status: StandardStatus = StandardStatus.ACTIVE
    priority: StandardPriority = StandardPriority.MEDIUM
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "description", "category")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: list[str]) -> list[str]:
        return _clean_tags(value) or []


class StandardUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    category: str | None = Field(None, min_length=1, max_length=100)
    status: StandardStatus | None = None
    priority: StandardPriority | None = None
    tags: list[str] | None = None

    @field_validator("title", "description", "category")
    @classmethod
    def not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        return _clean_tags(value)


class StandardRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str
    category: str
    status: str
    priority: str
    tags: list[str]
    vector_id: str | None
    created_at: datetime
    updated_at: datetime


class TagRequest(BaseModel):
    tag: str = Field(..., min_length=1, max_length=50)


class SearchResults(BaseModel):
    query: str
    items: list[StandardRead]
    total: int


class ReindexResult(BaseModel):
    indexed: int
    total: int
