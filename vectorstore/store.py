"""Vector index implementations and the factory that picks one.

Two interchangeable indexes:
  - ChromaVectorIndex: a remote Chroma server (durable, shared across processes)
  - InMemoryVectorIndex: a process-local dict with brute-force cosine search

create_vector_index() prefers the remote index when credentials are present
and degrades to the in-memory index on any connection or setup failure.
"""

import hashlib
import logging
import math
from abc import ABC, abstractmethod
from typing import Optional

from config import Settings
from errors import ConnectivityError
from schemas.chunk import TextChunk

logger = logging.getLogger(__name__)

SearchHit = tuple[TextChunk, float]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity in [-1, 1]; 0.0 for mismatched dimensions or zero vectors."""
    if len(a) != len(b):
        return 0.0
    dot = norm_a = norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    return 0.0 if denominator == 0 else dot / denominator


class VectorIndex(ABC):
    """Store of (id, vector, payload) records searchable by cosine similarity."""

    store_type: str = "abstract"

    @abstractmethod
    def upsert(self, id: str, vector: list[float], payload: TextChunk) -> None:
        """Insert or replace the record with this id."""

    @abstractmethod
    def search(self, query_vector: list[float], top_k: int = 5) -> list[SearchHit]:
        """Return up to ``top_k`` (payload, score) pairs, highest score first."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of records currently stored."""


# ---------------------------------------------------------------------------
# Remote Chroma index
# ---------------------------------------------------------------------------


class ChromaVectorIndex(VectorIndex):
    """Durable index backed by a Chroma server over HTTP."""

    store_type = "ChromaDB"

    def __init__(
        self,
        dimension: int,
        collection_name: str,
        host: Optional[str] = None,
        port: int = 8000,
        ssl: bool = False,
        api_key: Optional[str] = None,
        client=None,
    ):
        self.dimension = dimension
        self.collection_name = collection_name
        try:
            if client is None:
                import chromadb

                headers = {"x-chroma-token": api_key} if api_key else None
                client = chromadb.HttpClient(host=host, port=port, ssl=ssl, headers=headers)
            self.client = client
            self.collection = self._ensure_collection()
        except Exception as e:
            raise ConnectivityError(f"Chroma connection failed: {e}") from e

    def _ensure_collection(self):
        """Open the collection, recreating it if its dimension does not match."""
        existing = {getattr(c, "name", c) for c in self.client.list_collections()}

        if self.collection_name in existing:
            collection = self.client.get_collection(self.collection_name)
            existing_dim = (collection.metadata or {}).get("dimension")
            if existing_dim and int(existing_dim) != self.dimension:
                logger.warning(
                    "Collection '%s' has dimension %s, expected %d; deleting and recreating it",
                    self.collection_name, existing_dim, self.dimension,
                )
                self.client.delete_collection(self.collection_name)
            else:
                logger.info(
                    "Using existing collection '%s' (%d vectors)",
                    self.collection_name, collection.count(),
                )
                return collection

        collection = self.client.create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine", "dimension": self.dimension},
        )
        logger.info("Created collection '%s' (%d dimensions, cosine)", self.collection_name, self.dimension)
        return collection

    @staticmethod
    def point_id(chunk_id: str) -> int:
        """Stable numeric id for a chunk id (same input, same id, across processes)."""
        return int(hashlib.sha256(chunk_id.encode("utf-8")).hexdigest()[:15], 16)

    def upsert(self, id: str, vector: list[float], payload: TextChunk) -> None:
        self.collection.upsert(
            ids=[str(self.point_id(id))],
            embeddings=[vector],
            documents=[payload.content],
            metadatas=[payload.to_payload()],
        )

    def search(self, query_vector: list[float], top_k: int = 5) -> list[SearchHit]:
        results = self.collection.query(
            query_embeddings=[query_vector],
            n_results=top_k,
            include=["documents", "metadatas", "distances"],
        )
        hits: list[SearchHit] = []
        if not results or not results.get("ids") or not results["ids"][0]:
            return hits

        for i in range(len(results["ids"][0])):
            meta = dict(results["metadatas"][0][i] or {})
            meta.setdefault("content", results["documents"][0][i])
            # Chroma reports cosine distance; similarity = 1 - distance
            score = 1.0 - float(results["distances"][0][i])
            hits.append((TextChunk.from_payload(meta), score))
        hits.sort(key=lambda hit: hit[1], reverse=True)
        return hits

    @property
    def size(self) -> int:
        return self.collection.count()


# ---------------------------------------------------------------------------
# In-memory index
# ---------------------------------------------------------------------------


class InMemoryVectorIndex(VectorIndex):
    """Ephemeral index living in this process. Brute-force cosine search."""

    store_type = "In-Memory"

    def __init__(self, dimension: Optional[int] = None):
        self.dimension = dimension
        self._entries: dict[str, tuple[list[float], TextChunk]] = {}

    def upsert(self, id: str, vector: list[float], payload: TextChunk) -> None:
        if self.dimension is not None and len(vector) != self.dimension:
            raise ValueError(
                f"Vector for {id} has {len(vector)} dimensions, index expects {self.dimension}"
            )
        self._entries[id] = (list(vector), payload)

    def search(self, query_vector: list[float], top_k: int = 5) -> list[SearchHit]:
        if not self._entries:
            return []
        scored = [
            (payload, cosine_similarity(query_vector, vector))
            for vector, payload in self._entries.values()
        ]
        scored.sort(key=lambda hit: hit[1], reverse=True)
        return scored[:top_k]

    @property
    def size(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_vector_index(settings: Settings, dimension: int) -> VectorIndex:
    """Pick the remote index when configured and reachable, else the in-memory one.

    Never raises because the remote service is unreachable.
    """
    if settings.remote_index_configured:
        try:
            index = ChromaVectorIndex(
                dimension=dimension,
                collection_name=settings.chroma_collection,
                host=settings.chroma_host,
                port=settings.chroma_port,
                ssl=settings.chroma_ssl,
                api_key=settings.chroma_api_key,
            )
            logger.info("Using %s vector index", index.store_type)
            return index
        except Exception as e:
            logger.warning("Remote vector index unavailable, falling back to in-memory: %s", e)
    else:
        logger.warning("CHROMA_HOST / CHROMA_API_KEY not set, using in-memory vector index")

    return InMemoryVectorIndex(dimension=dimension)
