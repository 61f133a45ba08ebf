"""
concept-llm - LLM Orchestration Layer

Provider abstraction (OpenAI, Gemini) with JSON completion, model fallback and
embeddings, plus a semantic response cache keyed by embedding similarity.
"""

__version__ = "1.0.0"

from .chunking import sliding_window_chunk
from .client import LLMClient
from .config import ConceptLLMConfig, LLMSettings, ProviderName, load_config
from .errors import (
    CacheError,
    ConceptLLMError,
    ConfigurationError,
    EmbeddingError,
    JSONParseError,
    ModelUnavailableError,
    ProviderRequestError,
    ProviderUnavailableError,
)
from .logging_setup import configure_logging
from .semantic_cache import SemanticCache, SemanticCacheConfig

__all__ = [
    "LLMClient",
    "SemanticCache",
    "SemanticCacheConfig",
    "ConceptLLMConfig",
    "LLMSettings",
    "ProviderName",
    "load_config",
    "configure_logging",
    "sliding_window_chunk",
    # Errors
    "ConceptLLMError",
    "ConfigurationError",
    "ProviderRequestError",
    "ModelUnavailableError",
    "ProviderUnavailableError",
    "JSONParseError",
    "EmbeddingError",
    "CacheError",
]
