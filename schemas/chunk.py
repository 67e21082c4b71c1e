"""Corpus chunks and retrieval results."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TextChunk:
    """A bounded excerpt of the corpus; the unit of embedding and retrieval."""

    id: str
    content: str
    source: str
    chapter: str
    index: int

    def to_payload(self) -> dict:
        return {
            "chunk_id": self.id,
            "content": self.content,
            "source": self.source,
            "chapter": self.chapter,
            "chunk_index": self.index,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "TextChunk":
        return cls(
            id=payload.get("chunk_id", ""),
            content=payload.get("content", ""),
            source=payload.get("source", ""),
            chapter=payload.get("chapter", ""),
            index=int(payload.get("chunk_index", 0) or 0),
        )


@dataclass
class RetrievedDocument:
    """A corpus passage returned for one query."""

    content: str
    chapter: str
    score: float  # cosine similarity, -1..1
    source: str

    @classmethod
    def from_chunk(cls, chunk: TextChunk, score: float) -> "RetrievedDocument":
        return cls(
            content=chunk.content,
            chapter=chunk.chapter,
            score=score,
            source=chunk.source,
        )


@dataclass
class RetrieveResult:
    """Candidates partitioned at the similarity threshold.

    ``docs`` holds candidates scoring at or above ``threshold`` (highest first);
    ``skipped`` holds the rest, kept for auditability.
    """

    docs: list[RetrievedDocument] = field(default_factory=list)
    skipped: list[RetrievedDocument] = field(default_factory=list)
    threshold: float = 0.65
