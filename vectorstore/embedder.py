"""OpenAI embedding generator with batching and retry logic.

Uses text-embedding-3-small (1536 dimensions) by default. The dimension is
fixed for the lifetime of an Embedder and is what the vector index is
created with.

Rate limits and transient API errors are retried with exponential backoff;
rejected requests and rejected credentials are not.
"""

import logging
import time
from typing import Optional

import tiktoken
from openai import AuthenticationError, BadRequestError, OpenAI, PermissionDeniedError
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from config import Settings
from errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-small"
DEFAULT_DIMENSIONS = 1536
MAX_BATCH_SIZE = 256  # OpenAI has 300K token/request limit; smaller batches avoid hitting it
MAX_TOKENS_PER_TEXT = 8000  # model limit is 8192; leave margin

_NON_RETRYABLE = (BadRequestError, AuthenticationError, PermissionDeniedError)


class Embedder:
    """Generate embeddings using an OpenAI embedding model."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        dimensions: int = DEFAULT_DIMENSIONS,
        api_key: Optional[str] = None,
    ):
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set; embeddings are unavailable")
        self.model = model
        self.dimensions = dimensions
        self.client = OpenAI(api_key=api_key)
        self._encoder = tiktoken.encoding_for_model(model)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Embedder":
        return cls(
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            api_key=settings.openai_api_key,
        )

    def _truncate_text(self, text: str) -> str:
        """Truncate text to fit within the embedding model's token limit."""
        tokens = self._encoder.encode(text)
        if len(tokens) <= MAX_TOKENS_PER_TEXT:
            return text
        logger.warning(
            "Truncating text from %d to %d tokens (first 60 chars: '%.60s')",
            len(tokens), MAX_TOKENS_PER_TEXT, text,
        )
        return self._encoder.decode(tokens[:MAX_TOKENS_PER_TEXT])

    @retry(
        stop=stop_after_attempt(4),
        wait=wait_exponential(multiplier=2, min=2, max=30),
        retry=retry_if_not_exception_type(_NON_RETRYABLE),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "Embedding API retry %d after error: %s",
            retry_state.attempt_number,
            retry_state.outcome.exception() if retry_state.outcome else "unknown",
        ),
    )
    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed a single batch of texts via the API."""
        response = self.client.embeddings.create(
            model=self.model,
            input=texts,
            dimensions=self.dimensions,
        )
        # Response data is sorted by index
        sorted_data = sorted(response.data, key=lambda x: x.index)
        return [item.embedding for item in sorted_data]

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of texts, handling batching automatically.

        This is the public batch API. Corpus ingestion calls embed_single() per
        chunk instead, so one rejected chunk does not sink its whole batch.

        Args:
            texts: List of text strings to embed.

        Returns:
            List of embedding vectors (same order as input texts).

        Raises:
            ConfigurationError: The API rejected the configured credentials.
        """
        if not texts:
            return []

        texts = [self._truncate_text(t) for t in texts]

        all_embeddings: list[list[float]] = []
        total_batches = (len(texts) + MAX_BATCH_SIZE - 1) // MAX_BATCH_SIZE
        overall_start = time.time()

        for batch_idx in range(total_batches):
            start = batch_idx * MAX_BATCH_SIZE
            end = min(start + MAX_BATCH_SIZE, len(texts))
            try:
                all_embeddings.extend(self._embed_batch(texts[start:end]))
            except (AuthenticationError, PermissionDeniedError) as e:
                raise ConfigurationError(f"OpenAI rejected the embedding credentials: {e}") from e

        logger.debug(
            "Embedded %d texts (%d dimensions each) in %.1fs",
            len(all_embeddings), self.dimensions, time.time() - overall_start,
        )
        return all_embeddings

    def embed_single(self, text: str) -> list[float]:
        """Embed a single text string (one chunk or one query)."""
        return self.embed([text])[0]
