"""
LLM Module - Unified interface for LLM providers.

Usage:
    from llm import get_client

    client = get_client()  # Uses config settings
    response = client.generate("Your prompt here")
    print(response.content)

Supported providers:
- openai: OpenAI chat completions
- glm: Z.AI GLM via its OpenAI-compatible API
"""
from typing import Optional

from config import settings
from .base import LLMClient, LLMResponse, Message
from .openai_compat import OpenAICompatClient


# Endpoint per provider (None = SDK default)
_BASE_URLS = {
    "openai": None,
    "glm": "https://api.z.ai/api/paas/v4/",
}

# Default models per provider
_DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "glm": "glm-4.7",
}


def get_client(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    verify_ssl: Optional[bool] = None,
) -> LLMClient:
    """
    Get an LLM client instance.

    Args:
        provider: Provider name. Defaults to settings.LLM_PROVIDER
        api_key: API key. Defaults to settings.LLM_API_KEY
        model: Model name. Defaults to settings.LLM_MODEL or provider default
        verify_ssl: Whether to verify SSL. Defaults to settings.LLM_VERIFY_SSL

    Returns:
        Configured LLMClient instance
    """
    provider = (provider or settings.LLM_PROVIDER).lower()
    if provider not in _BASE_URLS:
        raise ValueError(f"Unknown LLM provider: {provider}. Available: {list(_BASE_URLS.keys())}")

    api_key = api_key or settings.LLM_API_KEY
    if not api_key:
        raise ValueError(f"API key required for provider: {provider}")

    model = model or settings.LLM_MODEL or _DEFAULT_MODELS[provider]

    if verify_ssl is None:
        verify_ssl = settings.LLM_VERIFY_SSL

    return OpenAICompatClient(
        api_key=api_key,
        model=model,
        base_url=settings.LLM_BASE_URL or _BASE_URLS[provider],
        timeout=settings.LLM_TIMEOUT_SECONDS,
        verify_ssl=verify_ssl,
    )


__all__ = [
    "get_client",
    "LLMClient",
    "LLMResponse",
    "Message",
    "OpenAICompatClient",
]
