"""
concept-llm - Core Error Types

Defines the exception hierarchy for the LLM orchestration layer.
All exceptions inherit from ConceptLLMError for consistent error handling.

Propagation policy:
- ConfigurationError and ProviderUnavailableError reach the caller
- JSONParseError reaches the caller only after retries are exhausted
- CacheError never leaves the semantic cache
"""

from enum import Enum
from typing import Any

PROMPT_PREVIEW_CHARS = 200


class ErrorCode(str, Enum):
    """Stable error codes for callers that surface errors to users."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    DEPENDENCY_MISSING = "DEPENDENCY_MISSING"

    # Provider errors
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    MODEL_UNAVAILABLE = "MODEL_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"

    # Response errors
    JSON_PARSE_ERROR = "JSON_PARSE_ERROR"
    EMBEDDING_ERROR = "EMBEDDING_ERROR"

    # Cache errors
    CACHE_FAILURE = "CACHE_FAILURE"

    INTERNAL_ERROR = "INTERNAL_ERROR"


def truncate_prompt(prompt: str | None, limit: int = PROMPT_PREVIEW_CHARS) -> str:
    """Shorten a prompt for error details and log records."""
    if not prompt:
        return ""
    return prompt if len(prompt) <= limit else prompt[:limit] + "..."


class ConceptLLMError(Exception):
    """Base exception for all concept-llm errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for diagnostics."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ConceptLLMError):
    """Raised when configuration is invalid or a credential is missing."""


class DependencyError(ConceptLLMError):
    """Raised when a required vendor SDK is not installed."""

    def __init__(
        self,
        package: str,
        feature: str | None = None,
        install_hint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        if feature:
            message = f"Required dependency '{package}' is missing for {feature}"
        else:
            message = f"Required dependency '{package}' is missing"

        if install_hint:
            message += f". Install with: {install_hint}"

        error_details = details or {}
        error_details.update({"package": package, "feature": feature, "install_hint": install_hint})
        super().__init__(message, error_details)


class ProviderRequestError(ConceptLLMError):
    """Raised when a request to a provider fails in transport or at the HTTP level."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
        prompt: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        error_details = dict(details or {})
        error_details.setdefault("provider", provider)
        error_details.setdefault("model", model)
        if prompt is not None:
            error_details.setdefault("prompt", truncate_prompt(prompt))
        if status_code is not None:
            error_details.setdefault("status_code", status_code)
        super().__init__(message, error_details)
        self.provider = provider
        self.model = model
        self.status_code = status_code


class ProviderTimeoutError(ProviderRequestError):
    """Raised when a provider call exceeds its timeout."""

    def __init__(self, provider: str, timeout: float, model: str | None = None, prompt: str | None = None):
        message = f"Provider {provider} timed out after {timeout}s"
        super().__init__(message, provider=provider, model=model, prompt=prompt, details={"timeout": timeout})
        self.timeout = timeout


class ProviderRateLimitError(ProviderRequestError):
    """Raised when a provider rate limit is hit."""

    def __init__(self, provider: str, retry_after: float | None = None, model: str | None = None):
        message = f"Provider {provider} rate limit exceeded"
        details: dict[str, Any] = {"error_code": ErrorCode.RATE_LIMITED.value}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(message, provider=provider, model=model, details=details, status_code=429)
        self.retry_after = retry_after


class ModelUnavailableError(ProviderRequestError):
    """Raised when the backend reports the requested model as not found or not supported."""

    def __init__(self, provider: str, model: str, reason: str | None = None):
        message = f"Model {model} is not available on {provider}"
        if reason:
            message += f": {reason}"
        super().__init__(message, provider=provider, model=model, details={"reason": reason}, status_code=404)


class ProviderUnavailableError(ConceptLLMError):
    """Raised when every model in the fallback chain has been rejected."""

    def __init__(
        self,
        provider: str,
        attempted_models: list[str],
        last_error: Exception | None = None,
        prompt: str | None = None,
    ):
        message = f"All {provider} models failed ({', '.join(attempted_models) or 'none attempted'})"
        if last_error is not None:
            message += f". Last error: {last_error}"
        super().__init__(
            message,
            {
                "provider": provider,
                "attempted_models": list(attempted_models),
                "last_error": str(last_error) if last_error else None,
                "prompt": truncate_prompt(prompt),
            },
        )
        self.provider = provider
        self.attempted_models = list(attempted_models)
        self.last_error = last_error


class JSONParseError(ConceptLLMError):
    """Raised when a JSON completion is unparseable or not an object after all retries."""

    def __init__(
        self,
        raw_response: str,
        attempts: int,
        provider: str | None = None,
        model: str | None = None,
        prompt: str | None = None,
        reason: str | None = None,
    ):
        message = f"Failed to parse JSON object response after {attempts} attempt(s)"
        if reason:
            message += f": {reason}"
        super().__init__(
            message,
            {
                "provider": provider,
                "model": model,
                "attempts": attempts,
                "reason": reason,
                "response_preview": truncate_prompt(raw_response),
                "prompt": truncate_prompt(prompt),
            },
        )
        self.raw_response = raw_response
        self.attempts = attempts


class EmbeddingError(ConceptLLMError):
    """Raised when an embedding call fails or returns no vector."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
        text: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        error_details = dict(details or {})
        error_details.update({"provider": provider, "model": model, "text": truncate_prompt(text)})
        super().__init__(message, error_details)
        self.provider = provider
        self.model = model


class CacheError(ConceptLLMError):
    """Internal semantic cache failure. Always caught inside the cache."""


def is_retryable_error(error: Exception) -> bool:
    """
    Check if an error is transient and worth retrying.

    Args:
        error: Exception to check

    Returns:
        True if error is retryable (transient)
    """
    if isinstance(error, ProviderTimeoutError | ProviderRateLimitError):
        return True

    if isinstance(error, ModelUnavailableError):
        # Handled by the fallback chain, not by blind retry
        return False

    if isinstance(error, ProviderRequestError):
        if error.status_code is not None and error.status_code >= 500:
            return True
        error_msg = str(error).lower()
        transient_indicators = [
            "timeout",
            "connection",
            "network",
            "503",
            "502",
            "504",
            "temporar",
        ]
        return any(indicator in error_msg for indicator in transient_indicators)

    return False


def extract_error_code(error: Exception) -> ErrorCode:
    """
    Extract appropriate ErrorCode from an exception.

    Args:
        error: Exception to categorize

    Returns:
        Appropriate ErrorCode for the exception
    """
    if isinstance(error, ProviderRateLimitError):
        return ErrorCode.RATE_LIMITED

    if isinstance(error, ProviderTimeoutError):
        return ErrorCode.PROVIDER_TIMEOUT

    if isinstance(error, ModelUnavailableError):
        return ErrorCode.MODEL_UNAVAILABLE

    if isinstance(error, ProviderRequestError):
        return ErrorCode.PROVIDER_ERROR

    if isinstance(error, ProviderUnavailableError):
        return ErrorCode.PROVIDER_UNAVAILABLE

    if isinstance(error, JSONParseError):
        return ErrorCode.JSON_PARSE_ERROR

    if isinstance(error, EmbeddingError):
        return ErrorCode.EMBEDDING_ERROR

    if isinstance(error, CacheError):
        return ErrorCode.CACHE_FAILURE

    if isinstance(error, DependencyError):
        return ErrorCode.DEPENDENCY_MISSING

    if isinstance(error, ConfigurationError):
        return ErrorCode.CONFIGURATION_ERROR

    return ErrorCode.INTERNAL_ERROR
