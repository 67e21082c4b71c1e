"""Tests for corpus ingestion and threshold-gated retrieval."""

import threading

import pytest

import vectorstore.store as store
from errors import ConfigurationError, IngestionError, RetrieverNotReadyError
from rag.retriever import NO_GROUNDING_MARKER, SIMILARITY_THRESHOLD, Retriever
from schemas.chunk import RetrievedDocument
from tests.conftest import MANUAL_KEYWORDS, TWO_PARAGRAPH_CORPUS, KeywordEmbedder
from vectorstore.store import InMemoryVectorIndex


def _counting_factory(calls: list):
    def factory(settings, dimension):
        calls.append(dimension)
        return InMemoryVectorIndex(dimension=dimension)

    return factory


def test_two_paragraph_corpus_and_unrelated_query(embedder, local_settings):
    """An off-topic query keeps nothing but still reports both candidates."""
    retriever = Retriever(embedder, settings=local_settings)

    stats = retriever.initialize(TWO_PARAGRAPH_CORPUS)
    assert stats == {"chunks_stored": 2, "store_type": "In-Memory"}

    result = retriever.retrieve("weather forecast for tomorrow", top_k=3)

    assert result.docs == []
    assert len(result.skipped) == 2
    assert result.threshold == SIMILARITY_THRESHOLD == 0.65


def test_relevant_query_is_kept_and_rest_skipped(embedder, local_settings):
    retriever = Retriever(embedder, settings=local_settings)
    retriever.initialize(TWO_PARAGRAPH_CORPUS)

    result = retriever.retrieve("mortgage rates and credit", top_k=3)

    assert len(result.docs) == 1
    assert result.docs[0].content.startswith("Mortgage rates")
    assert result.docs[0].score == pytest.approx(1.0)
    assert len(result.skipped) == 1


def test_kept_scores_rounded_to_three_decimals(embedder, local_settings):
    retriever = Retriever(embedder, settings=local_settings)
    retriever.initialize(TWO_PARAGRAPH_CORPUS)

    result = retriever.retrieve("bank lenders", top_k=3)

    assert [d.score for d in result.docs] == [0.949]


@pytest.mark.parametrize(
    "query",
    ["mortgage rates", "bank lenders", "credit approval", "lenders rates", "nothing relevant"],
)
@pytest.mark.parametrize("top_k", [1, 2, 5])
def test_partition_invariants(embedder, local_settings, query, top_k):
    retriever = Retriever(embedder, settings=local_settings)
    retriever.initialize(TWO_PARAGRAPH_CORPUS)

    result = retriever.retrieve(query, top_k=top_k)

    assert len(result.docs) + len(result.skipped) == min(top_k, 2)
    assert all(d.score >= result.threshold for d in result.docs)
    assert all(d.score < result.threshold for d in result.skipped)
    scores = [d.score for d in result.docs]
    assert scores == sorted(scores, reverse=True)


def test_custom_threshold(embedder, local_settings):
    retriever = Retriever(embedder, settings=local_settings, threshold=0.99)
    retriever.initialize(TWO_PARAGRAPH_CORPUS)

    result = retriever.retrieve("bank lenders", top_k=3)

    assert result.docs == []
    assert result.threshold == 0.99


def test_retrieve_before_initialize_raises(embedder, local_settings):
    retriever = Retriever(embedder, settings=local_settings)
    with pytest.raises(RetrieverNotReadyError):
        retriever.retrieve("mortgage rates")


def test_failed_chunks_are_skipped(local_settings):
    embedder = KeywordEmbedder(MANUAL_KEYWORDS, fail_on=("Bank",))
    retriever = Retriever(embedder, settings=local_settings)

    stats = retriever.initialize(TWO_PARAGRAPH_CORPUS)

    assert stats["chunks_stored"] == 1
    assert retriever.initialized


def test_ingestion_fails_when_no_chunk_is_stored(local_settings):
    embedder = KeywordEmbedder(MANUAL_KEYWORDS, fail_on=("Mortgage", "Bank"))
    retriever = Retriever(embedder, settings=local_settings)

    with pytest.raises(IngestionError):
        retriever.initialize(TWO_PARAGRAPH_CORPUS)
    assert not retriever.initialized
    with pytest.raises(RetrieverNotReadyError):
        retriever.retrieve("mortgage rates")


def test_empty_corpus_fails_ingestion(embedder, local_settings):
    retriever = Retriever(embedder, settings=local_settings)
    with pytest.raises(IngestionError):
        retriever.initialize("   \n\n  ")


def test_rejected_credentials_propagate(local_settings):
    embedder = KeywordEmbedder(
        MANUAL_KEYWORDS, fail_on=("Mortgage",), error=ConfigurationError("embedding key rejected")
    )
    retriever = Retriever(embedder, settings=local_settings)

    with pytest.raises(ConfigurationError):
        retriever.initialize(TWO_PARAGRAPH_CORPUS)
    assert len(embedder.calls) == 1


def test_initialize_is_idempotent(embedder, local_settings):
    calls = []
    retriever = Retriever(embedder, settings=local_settings, index_factory=_counting_factory(calls))

    first = retriever.initialize(TWO_PARAGRAPH_CORPUS)
    second = retriever.initialize("A completely different corpus that must be ignored.")

    assert first == second
    assert len(calls) == 1
    assert len(embedder.calls) == 2


def test_concurrent_first_callers_ingest_once(embedder, local_settings):
    calls = []
    retriever = Retriever(embedder, settings=local_settings, index_factory=_counting_factory(calls))
    barrier = threading.Barrier(4)
    results = []

    def worker():
        barrier.wait()
        results.append(retriever.initialize(TWO_PARAGRAPH_CORPUS))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(results) == 4
    assert all(r == results[0] for r in results)


def test_remote_outage_degrades_to_memory(embedder, remote_settings, monkeypatch):
    """Credentials present but the server is down: ingestion still succeeds locally."""

    class UnreachableIndex:
        def __init__(self, **kwargs):
            raise ConnectionError("connection refused")

    monkeypatch.setattr(store, "ChromaVectorIndex", UnreachableIndex)
    retriever = Retriever(embedder, settings=remote_settings)

    stats = retriever.initialize(TWO_PARAGRAPH_CORPUS)

    assert stats["store_type"] == "In-Memory"
    assert retriever.store_type == "In-Memory"
    assert retriever.retrieve("mortgage rates", top_k=3).docs


def test_store_type_before_initialize(embedder, local_settings):
    assert Retriever(embedder, settings=local_settings).store_type == "Not initialized"


def test_format_retrieved_docs(embedder, local_settings):
    retriever = Retriever(embedder, settings=local_settings)
    docs = [
        RetrievedDocument(content="Never promise approval.", chapter="Chapter 1", score=0.91, source="manual.txt"),
        RetrievedDocument(content="Disclose all fees.", chapter="Chapter 2", score=0.7, source="manual.txt"),
    ]

    text = retriever.format_retrieved_docs(docs)

    assert "[Citation #1] (chapter: Chapter 1, similarity: 0.91)" in text
    assert "[Citation #2]" in text
    assert "Disclose all fees." in text


def test_format_without_docs_uses_marker(embedder, local_settings):
    assert Retriever(embedder, settings=local_settings).format_retrieved_docs([]) == NO_GROUNDING_MARKER
