"""
Providers Module

Unified interface for generative-AI providers (OpenAI, Gemini).

Public API:
    - BaseProvider: Abstract base class (complete, complete_json, embed)
    - ProviderConfig: Per-provider configuration
    - ConversationMessage: One earlier turn passed as conversation history
    - ModelFallbackChain: Ordered, lazily discovered fallback models
    - OpenAIProvider, GeminiProvider: Concrete providers
    - ProviderFactory: Static registry used by LLMClient

Usage:
    >>> from concept_llm.providers import ProviderConfig, ProviderFactory
    >>>
    >>> factory = ProviderFactory()
    >>> provider = factory.create_provider(
    ...     "gemini",
    ...     ProviderConfig(api_key="...", model="gemini-3-pro-preview"),
    ... )
    >>> data = await provider.complete_json("Return {\"ok\": true}")
"""

from .base import (
    BaseProvider,
    ConversationMessage,
    ProviderConfig,
    extract_json_text,
    looks_like_model_unavailable,
)
from .factory import ProviderFactory
from .fallback import ModelFallbackChain
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider

__all__ = [
    # Base classes and models
    "BaseProvider",
    "ProviderConfig",
    "ConversationMessage",
    "ModelFallbackChain",
    "extract_json_text",
    "looks_like_model_unavailable",
    # Provider implementations
    "OpenAIProvider",
    "GeminiProvider",
    # Factory
    "ProviderFactory",
]
