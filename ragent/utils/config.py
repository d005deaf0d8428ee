"""
Configuration Management
========================

All environment-driven settings live here, validated and typed once at
startup. Values are read from the process environment after loading a
.env file (searched upwards from the working directory).

Usage:
    from ragent.utils.config import get_config

    config = get_config()
    print(config.provider.model)
    print(config.history.context_window)

Only the API key of the selected provider is required; the "log"
provider needs none at all.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from ragent.utils.logger import Logger

logger = Logger("Config")

PROVIDERS = ("openai", "mistral", "log")

# Default model per provider when RAGENT_MODEL is not set
DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "mistral": "mistral-small-latest",
    "log": "log",
}

# API key variable per provider
API_KEY_VARIABLES = {
    "openai": "OPENAI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
}


def _required(name: str) -> str:
    """
    Get a required environment variable.

    Raises:
        ValueError: If the variable is not set
    """
    value = os.getenv(name)
    if not value:
        raise ValueError(
            f"Missing required environment variable: {name}\n"
            f"Please ensure {name} is set in your .env file."
        )
    return value


def _optional(name: str, default: str) -> str:
    """Get an optional environment variable with a default."""
    return os.getenv(name, default)


def _optional_int(name: str, default: int) -> int:
    """
    Get an optional integer environment variable.

    Invalid values fall back to the default with a warning.
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"{name} is not a valid integer, using default: {default}")
        return default


def _optional_float(name: str, default: float | None) -> float | None:
    """Get an optional float environment variable ("none" disables it)."""
    value = os.getenv(name)
    if not value:
        return default
    if value.lower() == "none":
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning(f"{name} is not a valid number, using default: {default}")
        return default


def _optional_bool(name: str, default: bool) -> bool:
    """True if the value is 'true' (case-insensitive), otherwise False."""
    value = os.getenv(name)
    if not value:
        return default
    return value.lower() == "true"


def _optional_path(name: str) -> Path | None:
    value = os.getenv(name)
    return Path(value).expanduser() if value else None


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class ProviderConfig:
    """Chat-completions provider configuration."""
    name: str                      # openai | mistral | log
    api_key: str | None
    model: str
    base_url: str | None           # Override for OpenAI-compatible gateways
    max_tokens: int
    timeout_seconds: float | None  # Deadline for one provider call


@dataclass(frozen=True)
class EmbeddingsConfig:
    """Embeddings model configuration (always OpenAI)."""
    api_key: str | None
    model: str


@dataclass(frozen=True)
class HistoryConfig:
    """Chat history configuration."""
    directory: Path | None  # None keeps history in memory only
    key: str                # Conversation key (file name stem)
    context_window: int     # Max retained size in characters


@dataclass(frozen=True)
class AgentConfig:
    """Tool-call loop configuration."""
    max_tool_depth: int
    parallel_tools: bool


@dataclass(frozen=True)
class RAGConfig:
    """Retrieval configuration."""
    top_k: int
    vectorstore_directory: Path | None


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.provider.model
        config.agent.max_tool_depth
    """
    provider: ProviderConfig
    embeddings: EmbeddingsConfig
    history: HistoryConfig
    agent: AgentConfig
    rag: RAGConfig
    log_level: str


def load_config() -> Config:
    """
    Load and validate all configuration from the environment.

    Raises:
        ValueError: On an unknown provider, a missing API key for the
            selected provider, or a non-positive tool depth
    """
    load_dotenv()

    provider_name = _optional("RAGENT_PROVIDER", "openai").lower()
    if provider_name not in PROVIDERS:
        raise ValueError(
            f"Unknown RAGENT_PROVIDER '{provider_name}', expected one of: {', '.join(PROVIDERS)}"
        )

    key_variable = API_KEY_VARIABLES.get(provider_name)
    api_key = _required(key_variable) if key_variable else None

    max_tool_depth = _optional_int("RAGENT_MAX_TOOL_DEPTH", 10)
    if max_tool_depth <= 0:
        raise ValueError(f"RAGENT_MAX_TOOL_DEPTH must be a positive integer, got {max_tool_depth}")

    return Config(
        provider=ProviderConfig(
            name=provider_name,
            api_key=api_key,
            model=_optional("RAGENT_MODEL", DEFAULT_MODELS[provider_name]),
            base_url=os.getenv("RAGENT_BASE_URL"),
            max_tokens=_optional_int("RAGENT_MAX_TOKENS", 1024),
            timeout_seconds=_optional_float("RAGENT_TIMEOUT_SECONDS", 60.0),
        ),
        embeddings=EmbeddingsConfig(
            api_key=os.getenv("OPENAI_API_KEY"),
            model=_optional("RAGENT_EMBEDDING_MODEL", "text-embedding-3-small"),
        ),
        history=HistoryConfig(
            directory=_optional_path("RAGENT_HISTORY_DIR"),
            key=_optional("RAGENT_HISTORY_KEY", "default"),
            context_window=_optional_int("RAGENT_CONTEXT_WINDOW", 50000),
        ),
        agent=AgentConfig(
            max_tool_depth=max_tool_depth,
            parallel_tools=_optional_bool("RAGENT_PARALLEL_TOOLS", True),
        ),
        rag=RAGConfig(
            top_k=_optional_int("RAGENT_TOP_K", 4),
            vectorstore_directory=_optional_path("RAGENT_VECTORSTORE_DIR"),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """Return the configuration, loading it on first access."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    global _config_instance
    _config_instance = None


def is_rag_configured() -> bool:
    """Check whether a vector store directory is configured."""
    return get_config().rag.vectorstore_directory is not None
