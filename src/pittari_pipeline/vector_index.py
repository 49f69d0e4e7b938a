"""
Qdrant Vector Index

Stores one point per catalog row and answers nearest-neighbour queries.

Collection design:
  - single collection (QDRANT_COLLECTION_NAME), cosine distance
  - point id = catalog row id (unsigned int, as Qdrant requires)
  - payload = name, type, price_range, country (debugging / filtering only)

Upserts are keyed by point id, so re-running a page overwrites the same
points instead of duplicating them.
"""

from typing import List, Optional, Protocol, Sequence

import logging

from qdrant_client import QdrantClient, models

from . import config
from .models import EmbeddingVector, IndexMatch

logger = logging.getLogger(__name__)


class VectorIndex(Protocol):
    def upsert(self, vectors: Sequence[EmbeddingVector]) -> None:
        ...

    def query(self, vector: Sequence[float], top_k: int) -> List[IndexMatch]:
        ...


def create_client(url: Optional[str] = None, api_key: Optional[str] = None) -> QdrantClient:
    url = url or config.QDRANT_URL
    if url == ":memory:":
        return QdrantClient(location=":memory:")
    return QdrantClient(url=url, api_key=api_key or config.QDRANT_API_KEY)


class QdrantVectorIndex:
    """VectorIndex backed by a Qdrant collection."""

    def __init__(
        self,
        client: Optional[QdrantClient] = None,
        collection_name: Optional[str] = None,
    ) -> None:
        self.client = client or create_client()
        self.collection_name = collection_name or config.QDRANT_COLLECTION_NAME

    def ensure_collection(self, vector_size: Optional[int] = None) -> None:
        """Create the collection if it does not exist yet."""
        if self.client.collection_exists(self.collection_name):
            return
        size = vector_size or config.QDRANT_VECTOR_SIZE
        logger.info(
            "Creating Qdrant collection %s (size=%d, distance=%s)",
            self.collection_name,
            size,
            config.QDRANT_DISTANCE,
        )
        self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=models.VectorParams(
                size=size,
                distance=models.Distance(config.QDRANT_DISTANCE),
            ),
        )

    def upsert(self, vectors: Sequence[EmbeddingVector]) -> None:
        if not vectors:
            return
        points = [
            models.PointStruct(id=int(v.id), vector=list(v.values), payload=dict(v.metadata))
            for v in vectors
        ]
        self.client.upsert(
            collection_name=self.collection_name,
            points=points,
            wait=True,
        )
        logger.debug("Upserted %d points into %s", len(points), self.collection_name)

    def query(self, vector: Sequence[float], top_k: int) -> List[IndexMatch]:
        response = self.client.query_points(
            collection_name=self.collection_name,
            query=list(vector),
            limit=top_k,
            with_payload=True,
            with_vectors=False,
        )
        return [
            IndexMatch(id=str(point.id), score=point.score, metadata=point.payload or {})
            for point in response.points
        ]
