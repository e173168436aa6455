"""LiteLLM client wrapper with retry, backoff, and API key validation.

All remote embedding and chat calls route through this module. LiteLLM's
built-in retry is used (num_retries=3, exponential backoff). API key presence
is validated before a run starts so a missing key fails fast instead of
after Phase 1 has already stored every document.
"""

from __future__ import annotations

import os

import litellm

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True


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
    "voyage": "VOYAGE_API_KEY",
    "groq": "GROQ_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
    "local": None,  # sentence-transformers, in process
}


def api_key_env(provider: str) -> str | None:
    """Return the env var holding *provider*'s API key, or None if none is known."""
    return _PROVIDER_ENV.get(provider.lower())


def provider_of(model: str) -> str:
    """Return the provider prefix of *model* ('openai' when none is given)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str, api_base: str | None = None) -> None:
    """Check that the required API key env var is set for *model*.

    A custom ``api_base`` points at a self-hosted or proxy endpoint, so no
    provider key is demanded in that case.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    if api_base:
        return
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider)

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int = 1000,
    temperature: float = 0.7,
    api_base: str | None = None,
    num_retries: int = 3,
) -> str:
    """Call litellm.completion() with retry/backoff. Returns content string.

    Args:
        model: LiteLLM model string (provider/model format).
        messages: OpenAI-style message list.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature.
        api_base: Optional OpenAI-compatible endpoint URL.
        num_retries: Number of retries on transient errors (exponential backoff).

    Raises:
        litellm.exceptions.APIError: On persistent API failure after retries.
    """
    kwargs: dict = {}
    if api_base:
        kwargs["api_base"] = api_base
    response = litellm.completion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=num_retries,
        **kwargs,
    )
    return response.choices[0].message.content or ""


def embed_batch(model: str, texts: list[str], num_retries: int = 3) -> list[list[float]]:
    """Call litellm.embedding() once for *texts*.

    Vectors are ordered by each item's ``index`` field, i.e. in input order.
    The provider may return fewer items than *texts*; callers check the count.
    """
    if not texts:
        return []
    response = litellm.embedding(
        model=model,
        input=texts,
        num_retries=num_retries,
    )
    items = sorted(response.data, key=lambda item: item["index"])
    return [list(item["embedding"]) for item in items]
