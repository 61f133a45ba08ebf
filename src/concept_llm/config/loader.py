"""
concept-llm - Configuration Loader

Loads and validates configuration from environment variables and .env files.
"""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import ConceptLLMConfig

logger = logging.getLogger(__name__)

_config_instance: ConceptLLMConfig | None = None


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _build_config_dict() -> dict[str, Any]:
    """Collect raw configuration values from the environment."""
    llm: dict[str, Any] = {
        "temperature": float(os.getenv("LLM_TEMPERATURE", "0.7")),
    }
    if os.getenv("LLM_PROVIDER"):
        llm["provider"] = os.getenv("LLM_PROVIDER", "").strip().lower()
    if os.getenv("LLM_MODEL"):
        llm["model"] = os.getenv("LLM_MODEL")

    return {
        "environment": os.getenv("ENVIRONMENT", "development"),
        "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
        "llm": llm,
        "credentials": {
            "openai_api_key": os.getenv("OPENAI_API_KEY"),
            "openai_base_url": os.getenv("OPENAI_BASE_URL"),
            # GEMINI_API_KEY is accepted as an alias
            "google_api_key": os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY"),
        },
        "timeouts": {
            "timeout": float(os.getenv("LLM_TIMEOUT", "60.0")),
            "max_retries": int(os.getenv("LLM_MAX_RETRIES", "2")),
            "discovery_timeout": float(os.getenv("LLM_DISCOVERY_TIMEOUT", "10.0")),
        },
        "semantic_cache": {
            "enabled": _env_bool("SEMANTIC_CACHE_ENABLED", "true"),
            "db_path": os.getenv("SEMANTIC_CACHE_DB_PATH", "./data/llm_cache.db"),
            "similarity_threshold": float(os.getenv("SEMANTIC_CACHE_THRESHOLD", "0.95")),
            "max_cache_size": int(os.getenv("SEMANTIC_CACHE_MAX_SIZE", "1000")),
            "reclaim_batch": int(os.getenv("SEMANTIC_CACHE_RECLAIM_BATCH", "100")),
            "candidate_limit": int(os.getenv("SEMANTIC_CACHE_CANDIDATE_LIMIT", "100")),
        },
    }


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> ConceptLLMConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated ConceptLLMConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    try:
        config_dict = _build_config_dict()
    except ValueError as e:
        # int()/float() on a malformed variable
        raise ConfigurationError(f"Invalid numeric environment variable: {e}", details={"error": str(e)}) from e

    try:
        _config_instance = ConceptLLMConfig(**config_dict)
        logger.info(
            f"Configuration loaded successfully (environment: {_config_instance.environment.value})",
            extra={
                "environment": _config_instance.environment.value,
                "provider": _config_instance.llm.provider.value if _config_instance.llm.provider else None,
                "semantic_cache_enabled": _config_instance.semantic_cache.enabled,
            },
        )
        return _config_instance
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors(), "config_dict_keys": list(config_dict.keys())},
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables.",
            details={"validation_errors": e.errors()},
        ) from e


def get_config() -> ConceptLLMConfig:
    """
    Get the current configuration instance, loading it on first access.

    Returns:
        Current ConceptLLMConfig instance
    """
    if _config_instance is None:
        return load_config()
    return _config_instance


def reload_config(env_file: str | None = None) -> ConceptLLMConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded ConceptLLMConfig instance
    """
    return load_config(env_file=env_file, reload=True)
