"""
Bounded retry around a single provider call.

Every exception raised by the call counts as one failed attempt. After
``max_retries`` consecutive failures the invoker gives up with a
ProviderExhaustedError describing the last failure and the request.

Only wrap idempotent calls: a chat completion request can be repeated
safely, a function execution cannot.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, TypeVar

from chatcore.config.logging import get_logger
from chatcore.llm.models import ProviderExhaustedError

logger = get_logger(__name__)

MAX_RETRIES = 5

T = TypeVar("T")


class RetryingInvoker:
    """
    Calls an async function until it succeeds or the attempt budget runs out.

    Args:
        max_retries: Total attempts before giving up (default: 5)
        backoff_base: Base delay in seconds for exponential backoff with full
                      jitter. 0 (the default) retries immediately.
        backoff_max: Upper bound on a single delay in seconds
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = 0.0,
        backoff_max: float = 30.0,
    ):
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        if backoff_base < 0:
            raise ValueError(f"backoff_base must be non-negative, got {backoff_base}")
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max

    def _delay(self, attempt: int) -> float:
        if self.backoff_base <= 0:
            return 0.0
        ceiling = min(self.backoff_max, self.backoff_base * (2 ** (attempt - 1)))
        return random.uniform(0, ceiling)

    async def invoke(
        self,
        call: Callable[[], Awaitable[T]],
        *,
        request: dict[str, Any] | None = None,
    ) -> T:
        """
        Await ``call()`` with retry.

        Args:
            call: Zero-argument coroutine factory; invoked once per attempt
            request: Request payload attached to the error on exhaustion

        Returns:
            The first successful result

        Raises:
            ProviderExhaustedError: After max_retries consecutive failures
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return await call()
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Provider call failed (attempt {attempt}/{self.max_retries}): {e}"
                )

            if attempt < self.max_retries:
                delay = self._delay(attempt)
                if delay > 0:
                    await asyncio.sleep(delay)

        raise ProviderExhaustedError(self.max_retries, last_error, request=request)
