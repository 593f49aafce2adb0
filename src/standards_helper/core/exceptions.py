from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} with id '{resource_id}' not found",
        )


class BadRequestError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class IndexingUnavailableError(HTTPException):
    def __init__(self, detail: str = "Embedding index is unavailable") -> None:
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
        )


class VectorStoreError(Exception):
    """Base class for embedding and vector index failures."""


class EmptyInputError(VectorStoreError, ValueError):
    """Raised when asked to embed empty or whitespace-only text."""


class CollectionNotFoundError(VectorStoreError):
    def __init__(self, collection: str) -> None:
        super().__init__(f"Collection '{collection}' does not exist")
        self.collection = collection


class DimensionMismatchError(VectorStoreError, ValueError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class BackendUnavailableError(VectorStoreError):
    """Raised when the remote vector backend cannot be reached."""


class BackendTimeoutError(VectorStoreError, TimeoutError):
    """Raised when a call to the remote vector backend exceeds its timeout."""
