"""
Model Fallback Chain

When a backend rejects the configured model as not found / not supported,
the same logical request is replayed against the next untried model from an
ordered list of available models. The list comes from a remote model-listing
query, or from a hard-coded "last known good" list when that query fails, and
is cached for the lifetime of the owning provider instance.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from ..errors import ModelUnavailableError, ProviderUnavailableError, truncate_prompt
from ..resilience.retry import FatalFailure, RetryableFailure, Success

logger = logging.getLogger(__name__)

T = TypeVar("T")

ModelAttempt = Success[T] | RetryableFailure | FatalFailure


class ModelFallbackChain:
    """
    Ordered, lazily discovered list of models to fall back to.

    Args:
        provider_name: Provider the chain belongs to (for errors and logs)
        fetch_models: Coroutine function returning available model ids in preference order
        known_models: Hard-coded list used when discovery fails or returns nothing
    """

    def __init__(
        self,
        provider_name: str,
        fetch_models: Callable[[], Awaitable[list[str]]],
        known_models: Sequence[str],
    ) -> None:
        self.provider_name = provider_name
        self._fetch_models = fetch_models
        self._known_models = list(known_models)
        self._models: list[str] | None = None
        self._lock = asyncio.Lock()

    @property
    def discovered(self) -> bool:
        """Whether the model list has been resolved for this instance."""
        return self._models is not None

    async def resolve(self) -> list[str]:
        """
        Return the ordered model list, querying the backend at most once.

        Returns:
            Model identifiers in the order they should be tried
        """
        if self._models is not None:
            return list(self._models)

        async with self._lock:
            if self._models is not None:
                return list(self._models)

            try:
                models = await self._fetch_models()
            except Exception as e:
                logger.warning(
                    f"Failed to list {self.provider_name} models, using fallback list: {e}",
                    extra={"provider": self.provider_name, "error": str(e)},
                )
                models = []

            if not models:
                models = list(self._known_models)
                source = "known"
            else:
                source = "remote"

            # De-duplicate, keep order
            self._models = list(dict.fromkeys(models))
            logger.info(
                f"Resolved {len(self._models)} {self.provider_name} models ({source})",
                extra={"provider": self.provider_name, "model_count": len(self._models), "source": source},
            )
            return list(self._models)

    def reset(self) -> None:
        """Forget discovered models."""
        self._models = None

    @staticmethod
    async def _attempt(operation: Callable[[str], Awaitable[T]], model: str) -> ModelAttempt:
        try:
            return Success(await operation(model))
        except ModelUnavailableError as e:
            return RetryableFailure(reason=str(e), context={"model": model, "error": e})
        except Exception as e:
            return FatalFailure(e)

    async def run(
        self,
        operation: Callable[[str], Awaitable[T]],
        current_model: str,
        prompt: str | None = None,
    ) -> tuple[str, T]:
        """
        Run ``operation`` on ``current_model``, falling back through the chain.

        Only model-unavailable failures move on to the next model; every other
        failure is raised immediately.

        Args:
            operation: Coroutine function performing the request for a given model
            current_model: Configured model, tried first
            prompt: Prompt text for error context

        Returns:
            Tuple of (model that succeeded, result)

        Raises:
            ProviderUnavailableError: If every model is rejected as unavailable
        """
        attempted: list[str] = []
        last_error: Exception | None = None

        outcome = await self._attempt(operation, current_model)
        attempted.append(current_model)
        if isinstance(outcome, Success):
            return current_model, outcome.value
        if isinstance(outcome, FatalFailure):
            raise outcome.error
        last_error = outcome.context.get("error")
        logger.warning(
            f"Model {current_model} not available, trying fallback models",
            extra={"provider": self.provider_name, "model": current_model, "error": outcome.reason},
        )

        for model in await self.resolve():
            if model in attempted:
                continue

            outcome = await self._attempt(operation, model)
            attempted.append(model)

            if isinstance(outcome, Success):
                logger.info(
                    f"Fallback model {model} succeeded",
                    extra={"provider": self.provider_name, "model": model, "attempted": attempted},
                )
                return model, outcome.value
            if isinstance(outcome, FatalFailure):
                raise outcome.error

            last_error = outcome.context.get("error")
            logger.warning(
                f"Model {model} not available, trying next fallback",
                extra={"provider": self.provider_name, "model": model, "error": outcome.reason},
            )

        logger.error(
            f"All {self.provider_name} models failed",
            extra={
                "provider": self.provider_name,
                "attempted": attempted,
                "prompt": truncate_prompt(prompt, 100),
            },
        )
        raise ProviderUnavailableError(self.provider_name, attempted, last_error, prompt)
