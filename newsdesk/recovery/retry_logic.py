"""
NewsDesk Retry Logic
====================

Retry loop with linear backoff for transient network work.
"""

import asyncio
import inspect
from typing import Any, Callable, Optional, Tuple, Type
from dataclasses import dataclass

from ..utils.logging import get_logger_for_component
from ..utils.exceptions import NewsDeskError, is_retryable_error


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    base_delay: float = 2.0
    max_delay: float = 60.0
    retry_on_exceptions: Tuple[Type[BaseException], ...] = (ConnectionError, TimeoutError, asyncio.TimeoutError)


class RetryManager:
    """Runs a callable until it succeeds or the attempts are used up."""

    def __init__(self, config: Optional[RetryConfig] = None, component: str = "retry_manager"):
        self.config = config or RetryConfig()
        self.logger = get_logger_for_component(component)

    async def retry_async(self,
                          func: Callable[..., Any],
                          *args,
                          config: Optional[RetryConfig] = None,
                          operation: Optional[str] = None,
                          **kwargs) -> Any:
        """Retry a function with linear backoff.

        Args:
            func: Sync or async callable to run
            *args: Function arguments
            config: Override the manager's retry configuration
            operation: Name used in log messages (defaults to the function name)
            **kwargs: Function keyword arguments

        Returns:
            Function result if any attempt succeeds

        Raises:
            The last exception once every attempt failed, or the first
            non-retryable exception immediately
        """
        retry_config = config or self.config
        name = operation or getattr(func, "__name__", "operation")

        for attempt in range(1, retry_config.max_attempts + 1):
            try:
                if inspect.iscoroutinefunction(func):
                    result = await func(*args, **kwargs)
                else:
                    result = func(*args, **kwargs)

                if attempt > 1:
                    self.logger.info(f"Retry successful for {name} on attempt {attempt}")
                return result

            except Exception as e:
                if not self._should_retry_exception(e, retry_config):
                    self.logger.info(f"Not retrying {name} due to non-retryable exception: {e}")
                    raise

                if attempt >= retry_config.max_attempts:
                    self.logger.error(f"All {retry_config.max_attempts} attempts failed for {name}: {e}")
                    raise

                delay = self._calculate_delay(attempt, retry_config)
                self.logger.warning(
                    f"Attempt {attempt} failed for {name}: {e}. "
                    f"Retrying in {delay:.2f}s (attempt {attempt + 1}/{retry_config.max_attempts})"
                )
                await asyncio.sleep(delay)

    def _should_retry_exception(self, exception: Exception, config: RetryConfig) -> bool:
        if isinstance(exception, NewsDeskError):
            return is_retryable_error(exception)
        return isinstance(exception, config.retry_on_exceptions)

    def _calculate_delay(self, attempt: int, config: RetryConfig) -> float:
        """Delay grows by ``base_delay`` after every failed attempt."""
        return max(0.0, min(config.base_delay * attempt, config.max_delay))
