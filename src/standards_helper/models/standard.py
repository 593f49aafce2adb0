from sqlalchemy import JSON, String
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column

from standards_helper.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Standard(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "standards"

    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", server_default="active", index=True
    )
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default="medium", server_default="medium", index=True
    )
    tags: Mapped[list[str]] = mapped_column(
        MutableList.as_mutable(JSON), nullable=False, default=list
    )
    # Set once the embedding is stored in the vector index
    vector_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def add_tag(self, tag: str) -> bool:
        tag = tag.strip()
        if not tag or tag in self.tags:
            return False
        self.tags.append(tag)
        return True

    def remove_tag(self, tag: str) -> bool:
        if tag not in self.tags:
            return False
        self.tags.remove(tag)
        return True

    def __repr__(self) -> str:
        return f"<Standard {self.title} ({self.category})>"
