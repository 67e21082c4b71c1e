"""Environment-driven settings.

Values come from the process environment; the CLI loads a ``.env`` file with
python-dotenv before calling :func:`load_settings`.
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_COLLECTION = "compliance_manual"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Credentials and endpoints for the embedding, index and generation services."""

    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    llm_provider: str = "anthropic"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    chroma_host: Optional[str] = None
    chroma_port: int = 8000
    chroma_ssl: bool = False
    chroma_api_key: Optional[str] = None
    chroma_collection: str = DEFAULT_COLLECTION

    @property
    def remote_index_configured(self) -> bool:
        return bool(self.chroma_host and self.chroma_api_key)


def load_settings() -> Settings:
    """Read settings from environment variables."""
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        llm_provider=os.getenv("LLM_PROVIDER", "anthropic"),
        embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
        embedding_dimensions=int(os.getenv("EMBEDDING_DIMENSIONS", "1536")),
        chroma_host=os.getenv("CHROMA_HOST") or None,
        chroma_port=int(os.getenv("CHROMA_PORT", "8000")),
        chroma_ssl=_env_bool("CHROMA_SSL"),
        chroma_api_key=os.getenv("CHROMA_API_KEY") or None,
        chroma_collection=os.getenv("CHROMA_COLLECTION", DEFAULT_COLLECTION),
    )
