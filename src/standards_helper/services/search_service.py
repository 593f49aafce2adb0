"""Keeps the embedding index in step with the standards table and serves search.

Index failures never surface to callers: writes succeed without a vector
reference, and searches fall back to a keyword match in the database.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from standards_helper.core.exceptions import CollectionNotFoundError
from standards_helper.models.standard import Standard
from standards_helper.schemas.standard import StandardCreate
from standards_helper.services import standard_service
from standards_helper.services.embedding_service import EmbeddingGenerator, build_standard_text
from standards_helper.storage.vector_store import VectorRecord, VectorStore

logger = logging.getLogger(__name__)

STANDARDS_COLLECTION_TYPE = "standards"
DEFAULT_RESULT_LIMIT = 20


def _vector_record(standard: Standard, vector: list[float]) -> VectorRecord:
    return VectorRecord(
        id=str(standard.id),
        vector=vector,
        metadata={
            "standard_id": str(standard.id),
            "title": standard.title,
            "category": standard.category,
            "priority": standard.priority,
        },
        document=standard.description,
    )


class StandardSearchService:
    def __init__(
        self,
        vector_store: VectorStore,
        embedder: EmbeddingGenerator,
        collection: str,
        result_limit: int = DEFAULT_RESULT_LIMIT,
    ) -> None:
        self.vector_store = vector_store
        self.embedder = embedder
        self.collection = collection
        self.result_limit = result_limit
        self._collection_ready = False

    async def ensure_collection(self) -> None:
        if self._collection_ready:
            return
        if not await self.vector_store.collection_exists(self.collection):
            await self.vector_store.create_collection(self.collection)
        self._collection_ready = True

    # -- write path --------------------------------------------------------

    async def create_standard(self, db: AsyncSession, data: StandardCreate) -> Standard:
        standard = await standard_service.create_standard(db, data)
        logger.info("Created standard '%s' with id %s", standard.title, standard.id)
        await self.index_standard(db, standard)
        return standard

    async def index_standard(self, db: AsyncSession, standard: Standard) -> bool:
        """Embed and store a standard. Returns False, never raises, on failure."""
        try:
            vector = self.embedder.embed(build_standard_text(standard))
            await self.ensure_collection()
            await self.vector_store.insert(self.collection, [_vector_record(standard, vector)])
        except CollectionNotFoundError:
            self._collection_ready = False
            logger.exception(
                "Collection '%s' missing while indexing standard %s; "
                "it should have been provisioned at startup",
                self.collection,
                standard.id,
            )
            return False
        except Exception as e:
            logger.warning("Embedding standard %s failed: %s", standard.id, e)
            return False

        await standard_service.set_vector_id(db, standard, str(standard.id))
        return True

    async def reindex_standard(self, db: AsyncSession, standard: Standard) -> bool:
        """Replace a standard's vector: delete the old entries, then insert anew."""
        if standard.vector_id:
            try:
                await self.vector_store.delete_embedding(self.collection, standard.vector_id)
            except CollectionNotFoundError:
                # Nothing left to remove; index_standard provisions it again
                self._collection_ready = False
            except Exception as e:
                logger.warning("Removing old embedding for standard %s failed: %s", standard.id, e)
                return False
            await standard_service.set_vector_id(db, standard, None)
        return await self.index_standard(db, standard)

    async def reindex_all(self, db: AsyncSession) -> int:
        """Rebuild the collection from the database. Index errors propagate."""
        standards = await standard_service.list_all_standards(db)
        await self.vector_store.delete_collection(self.collection)
        self._collection_ready = False
        await self.ensure_collection()

        texts = {s.id: build_standard_text(s) for s in standards}
        vectors = self.embedder.embed_all(t for t in texts.values() if t.strip())
        records = [
            _vector_record(s, vectors[texts[s.id]]) for s in standards if texts[s.id] in vectors
        ]
        await self.vector_store.insert(self.collection, records)

        indexed = {r.id for r in records}
        for standard in standards:
            vector_id = str(standard.id) if str(standard.id) in indexed else None
            await standard_service.set_vector_id(db, standard, vector_id)

        logger.info(
            "Reindexed %d of %d standards into '%s'", len(records), len(standards), self.collection
        )
        return len(records)

    # -- delete path -------------------------------------------------------

    async def delete_standard(self, db: AsyncSession, standard: Standard) -> None:
        # Best effort: a failed index cleanup does not block the delete
        if standard.vector_id:
            try:
                await self.vector_store.delete_embedding(self.collection, standard.vector_id)
            except CollectionNotFoundError:
                logger.exception(
                    "Collection '%s' missing while removing embedding for standard %s",
                    self.collection,
                    standard.id,
                )
            except Exception as e:
                logger.warning("Removing embedding for standard %s failed: %s", standard.id, e)

        standard_id = standard.id
        await standard_service.delete_standard(db, standard)
        logger.info("Deleted standard %s", standard_id)

    # -- search path -------------------------------------------------------

    async def search(self, db: AsyncSession, query: str) -> list[Standard]:
        """Standards most similar to ``query``, in similarity order."""
        if not query or not query.strip():
            return await standard_service.list_all_standards(db)

        try:
            query_vector = self.embedder.embed(query)
            hits = await self.vector_store.search(
                self.collection, query_vector, limit=self.result_limit
            )
        except Exception as e:
            logger.warning("Vector search failed for query %r, using keyword search: %s", query, e)
            return await standard_service.search_by_title_or_description(db, query)

        standards: list[Standard] = []
        seen: set[uuid.UUID] = set()
        for hit in hits:
            try:
                standard_id = uuid.UUID(hit.id)
            except ValueError:
                logger.debug("Skipping index entry with non-UUID id %r", hit.id)
                continue
            if standard_id in seen:
                continue
            seen.add(standard_id)
            standard = await standard_service.get_standard(db, standard_id)
            if standard is None:
                # Stale entry for a standard that no longer exists
                continue
            standards.append(standard)

        logger.info("Vector search returned %d standards for query %r", len(standards), query)
        return standards
