from functools import lru_cache

from fastapi import Depends

from standards_helper.core.config import get_settings
from standards_helper.core.database import get_db
from standards_helper.services.embedding_service import EmbeddingGenerator
from standards_helper.services.search_service import (
    STANDARDS_COLLECTION_TYPE,
    StandardSearchService,
)
from standards_helper.storage.chroma import ChromaVectorStore
from standards_helper.storage.memory import InMemoryVectorStore
from standards_helper.storage.vector_store import VectorStore

__all__ = ["get_db", "get_embedding_generator", "get_search_service", "get_vector_store"]


@lru_cache
def get_vector_store() -> VectorStore:
    """Process-wide vector store, chosen once from settings."""
    settings = get_settings()
    if settings.vector_backend == "chroma":
        return ChromaVectorStore(
            host=settings.chromadb_host,
            port=settings.chromadb_port,
            timeout_seconds=settings.chromadb_timeout_seconds,
            max_retries=settings.chromadb_max_retries,
        )
    return InMemoryVectorStore()


@lru_cache
def get_embedding_generator() -> EmbeddingGenerator:
    return EmbeddingGenerator(dimension=get_settings().embedding_dimension)


def get_search_service(
    vector_store: VectorStore = Depends(get_vector_store),
    embedder: EmbeddingGenerator = Depends(get_embedding_generator),
) -> StandardSearchService:
    settings = get_settings()
    return StandardSearchService(
        vector_store=vector_store,
        embedder=embedder,
        collection=settings.collection_name(STANDARDS_COLLECTION_TYPE),
        result_limit=settings.search_result_limit,
    )
