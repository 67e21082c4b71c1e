"""Retrieval layer over the compliance manual.

Owns corpus ingestion (chunk -> embed -> upsert, once per process) and
per-query similarity search with threshold gating. Candidates below the
threshold are returned separately so callers can show what was filtered out.
"""

import logging
import threading
import time
from typing import Callable, Optional

from config import Settings, load_settings
from errors import ConfigurationError, IngestionError, RetrieverNotReadyError
from schemas.chunk import RetrievedDocument, RetrieveResult
from vectorstore.chunker import DEFAULT_SOURCE, Chunker
from vectorstore.store import VectorIndex, create_vector_index

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.65
DEFAULT_TOP_K = 3

NO_GROUNDING_MARKER = (
    "(No relevant compliance passages were retrieved; the keyword may be semantically "
    "distant from the compliance manual.)"
)


class Retriever:
    """Semantic retrieval engine wrapping a VectorIndex + Embedder.

    ``initialize`` is one-shot and safe under concurrent first callers: the
    first caller ingests, later callers get the cached stats.
    """

    def __init__(
        self,
        embedder,
        settings: Optional[Settings] = None,
        index_factory: Callable[[Settings, int], VectorIndex] = create_vector_index,
        chunker: Optional[Chunker] = None,
        threshold: float = SIMILARITY_THRESHOLD,
    ):
        self.embedder = embedder
        self.settings = settings or load_settings()
        self.index_factory = index_factory
        self.chunker = chunker or Chunker()
        self.threshold = threshold

        self._index: Optional[VectorIndex] = None
        self._stats: Optional[dict] = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._stats is not None

    @property
    def store_type(self) -> str:
        return self._index.store_type if self._index else "Not initialized"

    def initialize(self, corpus_text: str, source: str = DEFAULT_SOURCE) -> dict:
        """Chunk, embed and store the corpus.

        Returns:
            {"chunks_stored": int, "store_type": str}

        Raises:
            IngestionError: No chunk could be embedded and stored.
            ConfigurationError: The embedding service rejected its credentials.
        """
        with self._lock:
            if self._stats is not None:
                return dict(self._stats)

            t0 = time.perf_counter()
            index = self.index_factory(self.settings, self.embedder.dimensions)
            chunks = self.chunker.chunk_text(corpus_text, source=source)
            logger.info("Ingesting %d chunks into %s", len(chunks), index.store_type)

            stored = 0
            for chunk in chunks:
                try:
                    vector = self.embedder.embed_single(chunk.content)
                    index.upsert(chunk.id, vector, chunk)
                    stored += 1
                except ConfigurationError:
                    raise
                except Exception as e:
                    logger.error("Failed to embed chunk %s: %s", chunk.id, e)

            if stored == 0:
                raise IngestionError(
                    f"Ingestion failed: none of {len(chunks)} chunks could be embedded"
                )

            self._index = index
            self._stats = {"chunks_stored": index.size, "store_type": index.store_type}
            logger.info(
                "Embedded %d/%d chunks into %s in %.1fs",
                stored, len(chunks), index.store_type, time.perf_counter() - t0,
            )
            return dict(self._stats)

    def retrieve(self, query: str, top_k: int = DEFAULT_TOP_K) -> RetrieveResult:
        """Search the corpus and split candidates at the similarity threshold.

        An empty ``docs`` list is a normal outcome for an off-topic query.
        """
        if self._stats is None or self._index is None or self._index.size == 0:
            raise RetrieverNotReadyError("Retriever not initialized. Call initialize() first.")

        query_vector = self.embedder.embed_single(query)
        hits = self._index.search(query_vector, top_k)

        docs: list[RetrievedDocument] = []
        skipped: list[RetrievedDocument] = []
        for chunk, score in hits:
            if score >= self.threshold:
                docs.append(RetrievedDocument.from_chunk(chunk, round(score, 3)))
            else:
                skipped.append(RetrievedDocument.from_chunk(chunk, score))
                logger.warning(
                    "Skipping low-similarity passage (%.1f%% < %.0f%%): %.40s",
                    score * 100, self.threshold * 100, chunk.chapter,
                )

        docs.sort(key=lambda d: d.score, reverse=True)
        logger.info("Retrieved %d/%d passages above threshold", len(docs), len(hits))
        return RetrieveResult(docs=docs, skipped=skipped, threshold=self.threshold)

    def format_retrieved_docs(self, docs: list[RetrievedDocument]) -> str:
        """Render passages as the grounding block of a generation prompt."""
        if not docs:
            return NO_GROUNDING_MARKER

        parts = ["=== Internal compliance manual: relevant passages ===\n"]
        for i, doc in enumerate(docs, 1):
            parts.append(f"[Citation #{i}] (chapter: {doc.chapter}, similarity: {doc.score})\n{doc.content}\n")
        return "\n".join(parts)
