"""
concept-llm - Resilience Module

Explicit retry outcomes and exponential backoff.
"""

from .retry import (
    FatalFailure,
    Outcome,
    RetryableFailure,
    RetryConfig,
    RetryResult,
    Success,
    exponential_backoff,
    retry_outcomes,
)

__all__ = [
    "RetryConfig",
    "exponential_backoff",
    "retry_outcomes",
    "RetryResult",
    "Outcome",
    "Success",
    "RetryableFailure",
    "FatalFailure",
]
