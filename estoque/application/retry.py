"""
Retry policy for inventory operations.

Only ``ConflictRetryableError`` is retried: the whole operation runs again in
a fresh transaction. Business-rule errors surface on the first attempt.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from estoque.config import get_logger, get_settings
from estoque.core.exceptions import ConflictRetryableError

logger = get_logger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    """Log retry attempts."""
    logger.warning(
        "inventory_operation_retry",
        operation=getattr(retry_state.fn, "__qualname__", None),
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
    )


def get_retry_decorator(max_retries: int | None = None) -> Any:
    """Tenacity decorator configured from inventory settings."""
    settings = get_settings().inventory
    attempts = max_retries if max_retries is not None else settings.max_retries
    return retry(
        stop=stop_after_attempt(max(attempts, 1)),
        wait=wait_exponential(
            multiplier=settings.retry_delay,
            min=settings.retry_delay,
            max=settings.retry_delay * (settings.retry_multiplier**3),
        ),
        retry=retry_if_exception_type(ConflictRetryableError),
        before_sleep=_log_retry,
        reraise=True,
    )


async def run_with_retry(
    operation: Callable[..., Awaitable[T]],
    *args: Any,
    max_retries: int | None = None,
    **kwargs: Any,
) -> T:
    """
    Run ``operation(*args, **kwargs)``, retrying on concurrent-modification conflicts.

    Raises the last ``ConflictRetryableError`` once attempts are exhausted.
    """
    retry_decorator = get_retry_decorator(max_retries)
    return await retry_decorator(operation)(*args, **kwargs)
