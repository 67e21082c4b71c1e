"""Tests for the OpenAI embedder: credentials, retry policy and truncation."""

from types import SimpleNamespace

import httpx
import openai
import pytest

import vectorstore.embedder as embedder_module
from errors import ConfigurationError
from vectorstore.embedder import MAX_TOKENS_PER_TEXT, Embedder

EMBEDDINGS_URL = "https://api.openai.com/v1/embeddings"


class CharEncoder:
    """One token per character; enough to exercise truncation offline."""

    def encode(self, text):
        return list(text)

    def decode(self, tokens):
        return "".join(tokens)


@pytest.fixture
def offline_tokenizer(monkeypatch):
    monkeypatch.setattr(embedder_module.tiktoken, "encoding_for_model", lambda model: CharEncoder())


def _status_error(cls, status: int):
    request = httpx.Request("POST", EMBEDDINGS_URL)
    return cls(message=f"HTTP {status}", response=httpx.Response(status, request=request), body=None)


def _embedder(create) -> Embedder:
    embedder = Embedder(dimensions=3, api_key="test-key")
    embedder.client = SimpleNamespace(embeddings=SimpleNamespace(create=create))
    return embedder


def _counting_raiser(exc, calls: list):
    def create(**kwargs):
        calls.append(kwargs)
        raise exc

    return create


def test_missing_key_is_configuration_error():
    with pytest.raises(ConfigurationError):
        Embedder(api_key=None)


def test_rejected_key_is_configuration_error_without_retry(offline_tokenizer):
    calls = []
    embedder = _embedder(_counting_raiser(_status_error(openai.AuthenticationError, 401), calls))

    with pytest.raises(ConfigurationError):
        embedder.embed_single("Rates depend on credit.")
    assert len(calls) == 1


def test_permission_denied_is_configuration_error(offline_tokenizer):
    calls = []
    embedder = _embedder(_counting_raiser(_status_error(openai.PermissionDeniedError, 403), calls))

    with pytest.raises(ConfigurationError):
        embedder.embed(["a", "b"])
    assert len(calls) == 1


def test_bad_request_is_not_retried(offline_tokenizer):
    calls = []
    embedder = _embedder(_counting_raiser(_status_error(openai.BadRequestError, 400), calls))

    with pytest.raises(openai.BadRequestError):
        embedder.embed_single("Rates depend on credit.")
    assert len(calls) == 1


def test_vectors_follow_input_order(offline_tokenizer):
    captured = {}

    def create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(data=[
            SimpleNamespace(index=1, embedding=[0.0, 1.0, 0.0]),
            SimpleNamespace(index=0, embedding=[1.0, 0.0, 0.0]),
        ])

    vectors = _embedder(create).embed(["first", "second"])

    assert vectors == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]
    assert captured["dimensions"] == 3
    assert captured["model"] == "text-embedding-3-small"


def test_long_text_is_truncated_before_the_call(offline_tokenizer):
    captured = {}

    def create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(data=[SimpleNamespace(index=0, embedding=[1.0, 0.0, 0.0])])

    _embedder(create).embed_single("x" * (MAX_TOKENS_PER_TEXT + 100))

    assert len(captured["input"][0]) == MAX_TOKENS_PER_TEXT


def test_empty_input_makes_no_call(offline_tokenizer):
    assert _embedder(_counting_raiser(RuntimeError("unexpected"), [])).embed([]) == []
