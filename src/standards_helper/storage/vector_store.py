from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field


@dataclass(frozen=True)
class VectorRecord:
    id: str
    vector: Sequence[float]
    metadata: Mapping[str, str] = field(default_factory=dict)
    document: str | None = None


@dataclass(frozen=True)
class SearchHit:
    id: str
    distance: float
    metadata: Mapping[str, str] = field(default_factory=dict)
    document: str | None = None


class VectorStore(ABC):
    """Named collections of embedding records with nearest-neighbour search.

    Every operation except the collection-management ones raises
    ``CollectionNotFoundError`` when the target collection does not exist.
    """

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the backend is reachable."""
        ...

    @abstractmethod
    async def create_collection(self, name: str) -> None:
        """Create a collection. No-op if it already exists."""
        ...

    @abstractmethod
    async def delete_collection(self, name: str) -> None:
        """Drop a collection and all of its records. No-op if absent."""
        ...

    @abstractmethod
    async def collection_exists(self, name: str) -> bool:
        ...

    @abstractmethod
    async def insert(self, name: str, records: Sequence[VectorRecord]) -> None:
        """Append records. Ids are not de-duplicated."""
        ...

    @abstractmethod
    async def search(
        self,
        name: str,
        query_vector: Sequence[float],
        limit: int = 10,
    ) -> list[SearchHit]:
        """Return up to ``limit`` hits ordered by ascending Euclidean distance."""
        ...

    @abstractmethod
    async def delete_embedding(self, name: str, record_id: str) -> None:
        """Remove every record whose id equals ``record_id``."""
        ...
