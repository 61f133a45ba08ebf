"""
concept-llm - Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config
from .schemas import (
    DEFAULT_MODELS,
    DEFAULT_TEMPERATURE,
    ConceptLLMConfig,
    Environment,
    LLMSettings,
    LogLevel,
    ProviderCredentials,
    ProviderName,
    ProviderTimeouts,
    SemanticCacheConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    # Main config
    "ConceptLLMConfig",
    # Enums
    "Environment",
    "LogLevel",
    "ProviderName",
    # Config sections
    "LLMSettings",
    "ProviderCredentials",
    "ProviderTimeouts",
    "SemanticCacheConfig",
    # Defaults
    "DEFAULT_MODELS",
    "DEFAULT_TEMPERATURE",
]
