"""LiteLLM client wrapper: embeddings, chat completion, API key validation.

All LLM + embedding calls in the ingest and respond pipelines route through
this module. LiteLLM's built-in retry is used (num_retries=3, exponential
backoff). Callers receive injected ``Embedder`` / ``ChatModel`` objects so
tests can substitute doubles without patching module globals.
"""

from __future__ import annotations

import logging
import os
from typing import Protocol

import litellm

logger = logging.getLogger(__name__)

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
    "together_ai": "TOGETHERAI_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_env_var(provider: str) -> str | None:
    """Env var holding the API key for *provider* (None for local providers)."""
    return _PROVIDER_ENV.get(provider.lower(), f"{provider.upper()}_API_KEY")


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = provider_env_var(provider)

    if env_var is None:
        return  # No key required (e.g. ollama)

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 500,
    temperature: float = 0.2,
    num_retries: int = 3,
) -> str:
    """Call litellm.completion() with retry/backoff. Returns content string.

    Args:
        model: LiteLLM model string (provider/model format).
        messages: OpenAI-style message list.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature.
        num_retries: Number of retries on transient errors (exponential backoff).

    Returns:
        The text content of the first choice ("" when the model returned none).

    Raises:
        litellm.exceptions.APIError: On persistent API failure after retries.
    """
    response = litellm.completion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
    )
    return response.choices[0].message.content or ""


def embed(model: str, text: str, num_retries: int = 3) -> list[float]:
    """Call litellm.embedding() with retry/backoff. Returns embedding vector."""
    response = litellm.embedding(
        model=model,
        input=[text],
        num_retries=num_retries,
    )
    return response.data[0]["embedding"]


# ------------------------------------------------------------------
# Injectable collaborators
# ------------------------------------------------------------------


class Embedder(Protocol):
    def embed(self, text: str) -> list[float] | None:
        """Return the embedding of *text*, or None on failure."""


class ChatModel(Protocol):
    def complete(
        self, messages: list[dict], temperature: float, max_tokens: int
    ) -> str | None:
        """Return generated text, or None when nothing was generated."""


class LiteLLMEmbedder:
    """Embedder backed by ``litellm.embedding``. Failures become ``None``."""

    def __init__(self, model: str, dimensions: int | None = None, num_retries: int = 3) -> None:
        self.model = model
        self.dimensions = dimensions
        self.num_retries = num_retries

    def embed(self, text: str) -> list[float] | None:
        try:
            vector = embed(self.model, text, num_retries=self.num_retries)
        except Exception as exc:
            logger.error("Embedding with %s failed: %s", self.model, exc)
            return None
        if self.dimensions is not None and len(vector) != self.dimensions:
            logger.error(
                "Embedding model %s returned %d dimensions, expected %d",
                self.model,
                len(vector),
                self.dimensions,
            )
            return None
        return vector


class LiteLLMChat:
    """ChatModel backed by ``litellm.completion``. Failures become ``None``."""

    def __init__(self, model: str, num_retries: int = 3) -> None:
        self.model = model
        self.num_retries = num_retries

    def complete(
        self, messages: list[dict], temperature: float, max_tokens: int
    ) -> str | None:
        try:
            text = complete(
                self.model,
                messages,
                max_tokens=max_tokens,
                temperature=temperature,
                num_retries=self.num_retries,
            )
        except Exception as exc:
            logger.error("Completion with %s failed: %s", self.model, exc)
            return None
        return text or None
