from __future__ import annotations

from typing import Any, Optional

from ..ranking.text import cosine
from .base import Neighbor, VectorStore


class InMemoryVectorStore(VectorStore):
    """Brute-force cosine search over vectors held in a dict."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[list[float], dict[str, Any], str]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def upsert(
        self,
        id: str,
        embedding: list[float],
        metadata: dict[str, Any],
        document: str,
    ) -> None:
        self._entries[id] = (list(embedding), dict(metadata), document)

    async def query(self, embedding: list[float], k: int) -> list[Neighbor]:
        neighbors = [
            Neighbor(id=id, similarity=cosine(embedding, vector), metadata=metadata, document=document)
            for id, (vector, metadata, document) in self._entries.items()
        ]
        neighbors.sort(key=lambda n: (-n.similarity, n.id))
        return neighbors[: max(k, 0)]

    async def get(self, filter: Optional[dict[str, Any]] = None) -> list[Neighbor]:
        """All entries whose metadata contains every key/value in `filter`."""
        filter = filter or {}
        return [
            Neighbor(id=id, similarity=1.0, metadata=metadata, document=document)
            for id, (_, metadata, document) in sorted(self._entries.items())
            if all(metadata.get(k) == v for k, v in filter.items())
        ]

    async def delete(self, id: str) -> None:
        self._entries.pop(id, None)
