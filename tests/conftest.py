"""Shared fixtures and offline fakes for the embedding and generation services."""

from typing import Optional

import pytest

from config import Settings
from generators.llm_client import GenerationOptions
from schemas.chunk import TextChunk
from vectorstore.store import cosine_similarity


class KeywordEmbedder:
    """Deterministic embedder: one axis per keyword, plus an 'other' axis.

    Text containing none of the keywords lands on the 'other' axis, so it is
    orthogonal to every keyword-bearing chunk.
    """

    def __init__(self, keywords: list[str], fail_on: tuple = (), error: Optional[Exception] = None):
        self.keywords = [k.lower() for k in keywords]
        self.fail_on = fail_on
        self.error = error
        self.dimensions = len(self.keywords) + 1
        self.calls: list[str] = []

    def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        for marker in self.fail_on:
            if marker in text:
                raise self.error or RuntimeError(f"embedding service unavailable for '{marker}'")
        lowered = text.lower()
        vector = [float(lowered.count(k)) for k in self.keywords]
        vector.append(0.0 if any(vector) else 1.0)
        return vector


class ScriptedLLM:
    """Text-generation fake: each model either returns text or raises."""

    provider = "anthropic"

    def __init__(self, script: dict):
        self.script = script
        self.calls: list[str] = []
        self.prompts: list[str] = []
        self.options: list[GenerationOptions] = []

    def complete(self, model: str, prompt: str, options: Optional[GenerationOptions] = None) -> str:
        self.calls.append(model)
        self.prompts.append(prompt)
        self.options.append(options)
        outcome = self.script[model]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeChromaCollection:
    def __init__(self, name: str, metadata: Optional[dict] = None):
        self.name = name
        self.metadata = metadata
        self.records: dict[str, tuple] = {}

    def count(self) -> int:
        return len(self.records)

    def upsert(self, ids, embeddings, documents, metadatas):
        for id_, emb, doc, meta in zip(ids, embeddings, documents, metadatas):
            self.records[id_] = (emb, doc, meta)

    def query(self, query_embeddings, n_results, include):
        query = query_embeddings[0]
        scored = sorted(
            ((1.0 - cosine_similarity(query, emb), id_, doc, meta) for id_, (emb, doc, meta) in self.records.items()),
            key=lambda row: row[0],
        )[:n_results]
        return {
            "ids": [[row[1] for row in scored]],
            "documents": [[row[2] for row in scored]],
            "metadatas": [[row[3] for row in scored]],
            "distances": [[row[0] for row in scored]],
        }


class FakeChromaClient:
    def __init__(self, collections: Optional[list[FakeChromaCollection]] = None):
        self.collections = {c.name: c for c in (collections or [])}
        self.deleted: list[str] = []

    def list_collections(self):
        return list(self.collections.values())

    def get_collection(self, name):
        return self.collections[name]

    def delete_collection(self, name):
        self.deleted.append(name)
        del self.collections[name]

    def create_collection(self, name, metadata=None):
        collection = FakeChromaCollection(name, metadata)
        self.collections[name] = collection
        return collection


MANUAL_KEYWORDS = ["mortgage", "rates", "credit", "bank", "lenders", "approval"]

TWO_PARAGRAPH_CORPUS = (
    "Mortgage rates depend on credit history and on the loan term agreed.\n"
    "\n"
    "Bank lenders and private lenders offer different legal protection."
)


@pytest.fixture
def local_settings() -> Settings:
    return Settings()


@pytest.fixture
def remote_settings() -> Settings:
    return Settings(chroma_host="chroma.internal", chroma_api_key="test-token")


@pytest.fixture
def embedder() -> KeywordEmbedder:
    return KeywordEmbedder(MANUAL_KEYWORDS)


@pytest.fixture
def make_chunk():
    def _make(id: str = "manual.txt-p0", content: str = "Rates depend on credit.", index: int = 0) -> TextChunk:
        return TextChunk(id=id, content=content, source="manual.txt", chapter="full document", index=index)

    return _make
