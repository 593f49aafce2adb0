import asyncio
import logging
import math
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import chromadb
import httpx

from standards_helper.core.exceptions import (
    BackendTimeoutError,
    BackendUnavailableError,
    CollectionNotFoundError,
    DimensionMismatchError,
)
from standards_helper.storage.vector_store import SearchHit, VectorRecord, VectorStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONNECTION_ERRORS = (httpx.TransportError, ConnectionError)


def _is_missing_collection(exc: Exception) -> bool:
    message = str(exc).lower()
    return "does not exist" in message or "not found" in message


class ChromaVectorStore(VectorStore):
    """VectorStore backed by a remote Chroma server over HTTP.

    No local state is kept, so a failed or timed-out call never leaves a
    partial write visible through this adapter.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        client: Any = None,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout_seconds
        self._max_retries = max(max_retries, 0)
        self._client = client

    def _get_client(self) -> Any:
        # HttpClient contacts the server on construction. A refusal is raised
        # as ConnectionError so _call retries it like any transport failure.
        if self._client is None:
            try:
                self._client = chromadb.HttpClient(host=self._host, port=self._port)
            except Exception as e:
                raise ConnectionError(
                    f"Cannot connect to Chroma at {self._host}:{self._port}: {e}"
                ) from e
        return self._client

    async def _call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking client call in a thread with timeout and retries."""
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(func, *args, **kwargs),
                    timeout=self._timeout,
                )
            except TimeoutError as e:
                raise BackendTimeoutError(
                    f"Chroma call timed out after {self._timeout}s"
                ) from e
            except _CONNECTION_ERRORS as e:
                attempt += 1
                if attempt > self._max_retries:
                    raise BackendUnavailableError(
                        f"Chroma at {self._host}:{self._port} is unavailable: {e}"
                    ) from e
                logger.debug("Chroma call failed (attempt %d): %s", attempt, e)

    async def _collection(self, name: str) -> Any:
        def _get() -> Any:
            return self._get_client().get_collection(name=name)

        try:
            return await self._call(_get)
        except (BackendTimeoutError, BackendUnavailableError):
            raise
        except Exception as e:
            if _is_missing_collection(e):
                raise CollectionNotFoundError(name) from e
            raise

    async def health_check(self) -> bool:
        try:
            await self._call(lambda: self._get_client().heartbeat())
        except Exception as e:
            logger.warning("Chroma health check failed: %s", e)
            return False
        return True

    async def create_collection(self, name: str) -> None:
        if not name or not name.strip():
            raise ValueError("Collection name cannot be empty")
        await self._call(
            lambda: self._get_client().get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "l2"},
            )
        )
        logger.info("Ensured Chroma collection '%s'", name)

    async def delete_collection(self, name: str) -> None:
        try:
            await self._call(lambda: self._get_client().delete_collection(name=name))
        except (BackendTimeoutError, BackendUnavailableError):
            raise
        except Exception as e:
            if _is_missing_collection(e):
                logger.debug("Chroma collection '%s' already absent", name)
                return
            raise
        logger.info("Deleted Chroma collection '%s'", name)

    async def collection_exists(self, name: str) -> bool:
        try:
            await self._collection(name)
        except CollectionNotFoundError:
            return False
        return True

    async def insert(self, name: str, records: Sequence[VectorRecord]) -> None:
        coll = await self._collection(name)
        if not records:
            return
        documents = [r.document or "" for r in records]
        try:
            await self._call(
                coll.add,
                ids=[r.id for r in records],
                embeddings=[list(r.vector) for r in records],
                metadatas=[dict(r.metadata) for r in records],
                documents=documents,
            )
        except (BackendTimeoutError, BackendUnavailableError):
            raise
        except Exception as e:
            translated = self._translate(e, records[0].vector)
            if translated is e:
                raise
            raise translated from e
        logger.info("Added %d embeddings to Chroma collection '%s'", len(records), name)

    async def search(
        self,
        name: str,
        query_vector: Sequence[float],
        limit: int = 10,
    ) -> list[SearchHit]:
        coll = await self._collection(name)
        try:
            results = await self._call(
                coll.query,
                query_embeddings=[list(query_vector)],
                n_results=max(limit, 1),
                include=["distances", "metadatas", "documents"],
            )
        except (BackendTimeoutError, BackendUnavailableError):
            raise
        except Exception as e:
            translated = self._translate(e, query_vector)
            if translated is e:
                raise
            raise translated from e

        hits: list[SearchHit] = []
        if results and results["ids"] and results["ids"][0]:
            distances = results.get("distances") or [[]]
            metadatas = results.get("metadatas") or [[]]
            documents = results.get("documents") or [[]]
            for i, doc_id in enumerate(results["ids"][0]):
                # The l2 space reports squared distances
                squared = distances[0][i] if distances[0] else 0.0
                hits.append(
                    SearchHit(
                        id=doc_id,
                        distance=math.sqrt(max(squared, 0.0)),
                        metadata=dict(metadatas[0][i] or {}) if metadatas[0] else {},
                        document=documents[0][i] if documents[0] else None,
                    )
                )
        return hits

    async def delete_embedding(self, name: str, record_id: str) -> None:
        coll = await self._collection(name)
        await self._call(coll.delete, ids=[record_id])

    @staticmethod
    def _translate(exc: Exception, vector: Sequence[float]) -> Exception:
        message = str(exc)
        if "dimension" in message.lower():
            expected = _first_int(message, exclude=len(vector))
            return DimensionMismatchError(expected=expected, actual=len(vector))
        return exc


def _first_int(message: str, exclude: int) -> int:
    """Best-effort extraction of the collection dimension from a Chroma error."""
    for token in message.replace(",", " ").replace(".", " ").split():
        if token.isdigit() and int(token) != exclude:
            return int(token)
    return -1
