"""
Mistral Provider
================

Mistral's chat API speaks the same wire format as OpenAI, so it reuses
OpenAIProvider with its own settings. Tool calling is not enabled for
this backend: giving it tools raises ProviderError.

https://docs.mistral.ai/capabilities/completion/#chat-messages
"""

from dataclasses import replace

from ragent.providers.http import HttpTransport
from ragent.providers.openai import OpenAIProvider, ProviderSettings

MISTRAL_SETTINGS = ProviderSettings(
    name="mistral",
    base_url="https://api.mistral.ai",
    supports_tools=False,
    stream_usage=False,
)


def mistral_provider(
    api_key: str,
    model: str,
    max_tokens: int = 1024,
    transport: HttpTransport | None = None,
    timeout: float | None = None,
    base_url: str | None = None
) -> OpenAIProvider:
    """
    Build a provider for Mistral's chat-completions endpoint.

    base_url points the provider at a gateway or self-hosted deployment
    instead of api.mistral.ai.
    """
    settings = replace(MISTRAL_SETTINGS, base_url=base_url) if base_url else MISTRAL_SETTINGS
    return OpenAIProvider(
        api_key=api_key,
        model=model,
        max_tokens=max_tokens,
        settings=settings,
        transport=transport,
        timeout=timeout,
    )
