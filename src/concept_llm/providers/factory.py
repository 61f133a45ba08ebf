"""
Provider Factory

Builds provider instances from a statically-known registry. The registry is
fixed at import time; callers choose a provider by name once at startup and
hold on to the returned instance.
"""

import logging

from ..errors import ConfigurationError
from .base import BaseProvider, ProviderConfig
from .gemini_provider import GeminiProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)


class ProviderFactory:
    """
    Factory for creating and reusing generative-AI providers.

    Instances are cached per (provider, api key prefix) so repeated
    switches between providers reuse their discovered fallback chains.
    """

    # Registry of available providers
    _PROVIDERS: dict[str, type[BaseProvider]] = {
        "openai": OpenAIProvider,
        "gemini": GeminiProvider,
    }

    def __init__(self, registry: dict[str, type[BaseProvider]] | None = None) -> None:
        """
        Initialize provider factory.

        Args:
            registry: Replacement provider registry (defaults to OpenAI + Gemini)
        """
        self._registry: dict[str, type[BaseProvider]] = dict(registry or self._PROVIDERS)
        self._instances: dict[str, BaseProvider] = {}

    def create_provider(self, provider_name: str, config: ProviderConfig) -> BaseProvider:
        """
        Create or retrieve a provider instance.

        Args:
            provider_name: Name of the provider ("openai" or "gemini")
            config: Provider configuration

        Returns:
            Provider instance

        Raises:
            ConfigurationError: If provider name is not supported or config is invalid
        """
        provider_name = provider_name.lower().strip()

        if provider_name not in self._registry:
            supported = ", ".join(self._registry.keys())
            raise ConfigurationError(
                f"Unsupported provider: {provider_name}. Supported providers: {supported}",
                details={"provider": provider_name},
            )

        cache_key = f"{provider_name}:{config.api_key[:8] if config.api_key else 'none'}"
        if cache_key in self._instances:
            instance = self._instances[cache_key]
            instance.set_model(config.model)
            instance.set_temperature(config.temperature)
            return instance

        provider_class = self._registry[provider_name]
        instance = provider_class(config)
        self._instances[cache_key] = instance

        logger.info(
            f"Created {provider_name} provider instance",
            extra={"provider": provider_name, "model": config.model, "has_api_key": bool(config.api_key)},
        )
        return instance

    def get_provider(self, provider_name: str) -> BaseProvider | None:
        """
        Get an existing provider instance by name.

        Args:
            provider_name: Name of the provider

        Returns:
            Provider instance or None if not created yet
        """
        provider_name = provider_name.lower().strip()
        for cache_key, instance in self._instances.items():
            if cache_key.startswith(f"{provider_name}:"):
                return instance
        return None

    async def close_all(self) -> None:
        """Close all provider instances and clean up resources."""
        if not self._instances:
            logger.debug("No providers to close")
            return

        errors = []
        for provider in self._instances.values():
            try:
                await provider.close()
                logger.debug(f"Closed provider: {provider.name}")
            except Exception as e:
                error_msg = f"Error closing provider {provider.name}: {e}"
                logger.error(error_msg, extra={"provider": provider.name, "error": str(e)}, exc_info=True)
                errors.append(error_msg)

        self._instances.clear()

        if errors:
            logger.warning(f"Closed all providers with {len(errors)} error(s)")
        else:
            logger.info("All providers closed successfully")

    @classmethod
    def get_supported_providers(cls) -> list[str]:
        """
        Get list of supported provider names.

        Returns:
            List of provider names
        """
        return list(cls._PROVIDERS.keys())
