"""Text-generation client for Anthropic and OpenAI models.

The model is chosen per call so a caller can walk an ordered list of
candidates with one client. SDK errors are mapped onto the project's
taxonomy: rejected credentials become ConfigurationError (never worth
retrying), rate limits become QuotaExceededError, anything else from the
API becomes GenerationError.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import anthropic
import openai

from config import Settings
from errors import ConfigurationError, GenerationError, QuotaExceededError

logger = logging.getLogger(__name__)

# Priority order per provider, most preferred first
MODEL_CANDIDATES = {
    "anthropic": [
        "claude-sonnet-4-6",
        "claude-sonnet-4-20250514",
        "claude-haiku-4-5-20251001",
    ],
    "openai": [
        "gpt-4o",
        "gpt-4o-mini",
    ],
}

JSON_ONLY_SYSTEM = (
    "You return exactly one valid JSON object. No markdown fences, "
    "no commentary before or after the JSON."
)

_AUTH_ERRORS = (
    anthropic.AuthenticationError,
    anthropic.PermissionDeniedError,
    openai.AuthenticationError,
    openai.PermissionDeniedError,
)
_QUOTA_ERRORS = (anthropic.RateLimitError, openai.RateLimitError)
_API_ERRORS = (anthropic.APIError, openai.APIError)


@dataclass
class GenerationOptions:
    temperature: float = 0.7
    top_p: Optional[float] = None
    max_tokens: int = 8192
    json_output: bool = True  # ask the provider for structured JSON output


class LLMClient:
    """Single-prompt completion client over Anthropic or OpenAI."""

    def __init__(self, provider: str = "anthropic", api_key: Optional[str] = None):
        self.provider = provider
        if provider == "anthropic":
            if not api_key:
                raise ConfigurationError("ANTHROPIC_API_KEY is not set")
            self.client = anthropic.Anthropic(api_key=api_key)
        elif provider == "openai":
            if not api_key:
                raise ConfigurationError("OPENAI_API_KEY is not set")
            self.client = openai.OpenAI(api_key=api_key)
        else:
            raise ConfigurationError(f"Unsupported LLM provider: {provider}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMClient":
        key = settings.anthropic_api_key if settings.llm_provider == "anthropic" else settings.openai_api_key
        return cls(provider=settings.llm_provider, api_key=key)

    @property
    def candidates(self) -> list[str]:
        return list(MODEL_CANDIDATES.get(self.provider, []))

    def complete(self, model: str, prompt: str, options: Optional[GenerationOptions] = None) -> str:
        """Send one prompt to ``model`` and return the response text."""
        options = options or GenerationOptions()
        try:
            if self.provider == "anthropic":
                text = self._complete_anthropic(model, prompt, options)
            else:
                text = self._complete_openai(model, prompt, options)
        except _AUTH_ERRORS as e:
            raise ConfigurationError(f"{self.provider} rejected the API key: {e}") from e
        except _QUOTA_ERRORS as e:
            raise QuotaExceededError(f"{model} rate limited: {e}") from e
        except _API_ERRORS as e:
            raise GenerationError(f"{model} call failed: {e}") from e

        if not text or not text.strip():
            raise GenerationError(f"{model} returned an empty response")
        return text

    def _complete_anthropic(self, model: str, prompt: str, options: GenerationOptions) -> str:
        params = {
            "model": model,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if options.top_p is not None:
            params["top_p"] = options.top_p
        if options.json_output:
            params["system"] = JSON_ONLY_SYSTEM

        response = self.client.messages.create(**params)
        text = ""
        for block in response.content:
            if getattr(block, "type", None) == "text":
                text += block.text
        return text

    def _complete_openai(self, model: str, prompt: str, options: GenerationOptions) -> str:
        params = {
            "model": model,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if options.top_p is not None:
            params["top_p"] = options.top_p
        if options.json_output:
            params["response_format"] = {"type": "json_object"}
            params["messages"].insert(0, {"role": "system", "content": JSON_ONLY_SYSTEM})

        response = self.client.chat.completions.create(**params)
        return response.choices[0].message.content or ""
