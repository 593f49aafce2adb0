"""In-memory VectorStore: brute-force Euclidean search over per-collection lists."""

import asyncio
import logging
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

import numpy as np

from standards_helper.core.exceptions import CollectionNotFoundError, DimensionMismatchError
from standards_helper.storage.vector_store import SearchHit, VectorRecord, VectorStore

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class _Collection:
    def __init__(self, name: str) -> None:
        self.name = name
        self.lock = ReadWriteLock()
        self.records: list[VectorRecord] = []
        # Fixed by the first inserted vector
        self.dimension: int | None = None


def euclidean_distances(query: Sequence[float], vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """Distance from ``query`` to each row of ``vectors``; lengths must agree."""
    q = np.asarray(query, dtype=np.float64)
    matrix = np.asarray(vectors, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[1] != q.shape[0]:
        stored = matrix.shape[1] if matrix.ndim == 2 else -1
        raise DimensionMismatchError(expected=stored, actual=q.shape[0])
    return np.sqrt(np.sum((matrix - q) ** 2, axis=1))


class InMemoryVectorStore(VectorStore):
    """VectorStore backed by process memory. Work is offloaded to worker threads."""

    def __init__(self) -> None:
        self._collections: dict[str, _Collection] = {}
        self._registry_lock = threading.Lock()

    async def health_check(self) -> bool:
        return True

    async def create_collection(self, name: str) -> None:
        await asyncio.to_thread(self._create_collection, name)

    async def delete_collection(self, name: str) -> None:
        await asyncio.to_thread(self._delete_collection, name)

    async def collection_exists(self, name: str) -> bool:
        with self._registry_lock:
            return name in self._collections

    async def insert(self, name: str, records: Sequence[VectorRecord]) -> None:
        await asyncio.to_thread(self._insert, name, list(records))

    async def search(
        self,
        name: str,
        query_vector: Sequence[float],
        limit: int = 10,
    ) -> list[SearchHit]:
        return await asyncio.to_thread(self._search, name, list(query_vector), limit)

    async def delete_embedding(self, name: str, record_id: str) -> None:
        await asyncio.to_thread(self._delete_embedding, name, record_id)

    def _get(self, name: str) -> _Collection:
        with self._registry_lock:
            coll = self._collections.get(name)
        if coll is None:
            raise CollectionNotFoundError(name)
        return coll

    def _create_collection(self, name: str) -> None:
        if not name or not name.strip():
            raise ValueError("Collection name cannot be empty")
        with self._registry_lock:
            if name in self._collections:
                logger.debug("Collection '%s' already exists", name)
                return
            self._collections[name] = _Collection(name)
        logger.info("Created collection '%s'", name)

    def _delete_collection(self, name: str) -> None:
        with self._registry_lock:
            removed = self._collections.pop(name, None)
        if removed is not None:
            logger.info("Deleted collection '%s'", name)

    def _insert(self, name: str, records: list[VectorRecord]) -> None:
        coll = self._get(name)
        if not records:
            return

        # Validate the whole batch before touching the collection
        expected = coll.dimension if coll.dimension is not None else len(records[0].vector)
        for record in records:
            if len(record.vector) != expected:
                raise DimensionMismatchError(expected=expected, actual=len(record.vector))

        frozen = [
            VectorRecord(
                id=r.id,
                vector=tuple(float(v) for v in r.vector),
                metadata=dict(r.metadata),
                document=r.document,
            )
            for r in records
        ]
        with coll.lock.write():
            if coll.dimension is None:
                coll.dimension = expected
            elif coll.dimension != expected:
                raise DimensionMismatchError(expected=coll.dimension, actual=expected)
            coll.records.extend(frozen)
        logger.info("Added %d embeddings to collection '%s'", len(frozen), name)

    def _search(self, name: str, query_vector: list[float], limit: int) -> list[SearchHit]:
        coll = self._get(name)
        limit = max(limit, 1)

        with coll.lock.read():
            if not coll.records:
                return []
            if len(query_vector) != coll.dimension:
                raise DimensionMismatchError(expected=coll.dimension, actual=len(query_vector))
            records = list(coll.records)
            distances = euclidean_distances(query_vector, [r.vector for r in records])

        # Stable: equal distances keep insertion order
        order = np.argsort(distances, kind="stable")[:limit]
        hits = [
            SearchHit(
                id=records[i].id,
                distance=float(distances[i]),
                metadata=dict(records[i].metadata),
                document=records[i].document,
            )
            for i in order
        ]
        logger.debug("Searched collection '%s', returned %d results", name, len(hits))
        return hits

    def _delete_embedding(self, name: str, record_id: str) -> None:
        coll = self._get(name)
        with coll.lock.write():
            before = len(coll.records)
            coll.records[:] = [r for r in coll.records if r.id != record_id]
            removed = before - len(coll.records)
        logger.info("Deleted %d embeddings from collection '%s'", removed, name)

    def count(self, name: str) -> int:
        """Number of records currently held in ``name``."""
        coll = self._get(name)
        with coll.lock.read():
            return len(coll.records)
