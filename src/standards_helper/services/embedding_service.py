import hashlib
import math
import random
from collections.abc import Iterable
from typing import TYPE_CHECKING

from standards_helper.core.exceptions import EmptyInputError

if TYPE_CHECKING:
    from standards_helper.models.standard import Standard

DEFAULT_DIMENSION = 384


def _hash64(data: bytes) -> int:
    return int.from_bytes(hashlib.blake2b(data, digest_size=8).digest(), "big")


class EmbeddingGenerator:
    """Deterministic text-to-vector generator standing in for an embedding model.

    The same text always maps to the same unit-length vector, across calls and
    across process restarts. Each coordinate is drawn from a generator seeded
    by re-hashing ``hash(text) ^ i``.
    """

    def __init__(self, dimension: int = DEFAULT_DIMENSION) -> None:
        if dimension < 1:
            raise ValueError("Embedding dimension must be positive")
        self.dimension = dimension

    def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise EmptyInputError("Text cannot be empty")
        return self._generate(text)

    def embed_all(self, texts: Iterable[str]) -> dict[str, list[float]]:
        """Embed each distinct text independently."""
        result: dict[str, list[float]] = {}
        for text in texts:
            if text not in result:
                result[text] = self.embed(text)
        return result

    def _generate(self, text: str) -> list[float]:
        text_hash = _hash64(text.encode("utf-8"))
        vector: list[float] = []
        for i in range(self.dimension):
            seed = _hash64((text_hash ^ i).to_bytes(8, "big"))
            vector.append(random.Random(seed).uniform(-1.0, 1.0))

        magnitude = math.sqrt(sum(v * v for v in vector))
        if magnitude > 0:
            vector = [v / magnitude for v in vector]
        return vector


def build_standard_text(standard: "Standard") -> str:
    """Search text for a standard: title, description and tags, space-joined."""
    parts = [standard.title, standard.description, *(standard.tags or [])]
    return " ".join(part for part in parts if part)
