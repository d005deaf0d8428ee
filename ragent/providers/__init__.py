"""
Providers
=========

Adapters between the agent and remote model backends.

- base: the Provider capability interface and ChatStream
- streaming: frame decoding and the streaming state machine
- http: httpx transport with error mapping
- openai: OpenAI-compatible chat-completions adapter
- mistral: Mistral settings for the same adapter
- log: a provider that only logs (dry runs)

create_provider() builds the backend selected in the configuration.
"""

from dataclasses import replace

from ragent.providers.base import ChatStream, Provider
from ragent.providers.log import LogProvider
from ragent.providers.mistral import mistral_provider
from ragent.providers.openai import OPENAI_SETTINGS, OpenAIProvider, ProviderSettings
from ragent.providers.streaming import FinishReason, StreamPhase, StreamState
from ragent.utils.config import ProviderConfig


def create_provider(config: ProviderConfig) -> Provider:
    """Build the provider described by the configuration."""
    if config.name == "log":
        return LogProvider()

    if config.name == "mistral":
        return mistral_provider(
            api_key=config.api_key or "",
            model=config.model,
            max_tokens=config.max_tokens,
            timeout=config.timeout_seconds,
            base_url=config.base_url,
        )

    settings = OPENAI_SETTINGS
    if config.base_url:
        settings = replace(OPENAI_SETTINGS, base_url=config.base_url)

    return OpenAIProvider(
        api_key=config.api_key or "",
        model=config.model,
        max_tokens=config.max_tokens,
        settings=settings,
        timeout=config.timeout_seconds,
    )


__all__ = [
    "ChatStream",
    "Provider",
    "LogProvider",
    "OpenAIProvider",
    "ProviderSettings",
    "OPENAI_SETTINGS",
    "mistral_provider",
    "FinishReason",
    "StreamPhase",
    "StreamState",
    "create_provider",
]
