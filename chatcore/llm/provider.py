"""
Provider client interface and the LiteLLM-backed default implementation.

The orchestrator only needs one operation from a provider: "create chat
completion". Keeping it behind an abstract class lets tests and alternative
transports be injected explicitly instead of constructing a global client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from litellm import acompletion

from chatcore.config.logging import get_logger
from chatcore.config.settings import LLMSettings
from chatcore.llm.models import ProviderCallFailedError, ProviderRequest

logger = get_logger(__name__)


class ProviderClient(ABC):
    """
    Abstract base class for chat completion providers.

    Implementations return the provider's raw response object; validation
    of its shape happens in the orchestrator.
    """

    @abstractmethod
    async def create_chat_completion(self, request: ProviderRequest) -> Any:
        """
        Send one chat completion request.

        Args:
            request: Model, temperature, messages and optional functions

        Returns:
            Raw response shaped like
            ``{"choices": [{"message": {"role", "content", "function_call"}}]}``
            (a mapping or an object exposing ``model_dump()``)

        Raises:
            ProviderCallFailedError: If the transport or the provider fails
        """
        pass

    async def close(self) -> None:
        """Release any held resources. No-op by default."""
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False


class LiteLLMProviderClient(ProviderClient):
    """
    ProviderClient that routes requests through ``litellm.acompletion``.

    The API key lives on the client and is added per call, so it never
    appears in the request payload that errors carry.

    Args:
        api_key: Provider API key (empty uses LiteLLM's environment lookup)
        max_tokens: Optional completion length cap
        timeout: Seconds before the in-flight call is aborted
    """

    def __init__(
        self,
        api_key: str = "",
        max_tokens: int | None = None,
        timeout: float | None = None,
    ):
        self._api_key = api_key
        self._max_tokens = max_tokens
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: LLMSettings) -> LiteLLMProviderClient:
        return cls(
            api_key=settings.api_key,
            max_tokens=settings.max_tokens,
            timeout=settings.request_timeout,
        )

    async def create_chat_completion(self, request: ProviderRequest) -> Any:
        call_kwargs: dict[str, Any] = request.to_payload()
        if self._api_key:
            call_kwargs["api_key"] = self._api_key
        if self._max_tokens is not None:
            call_kwargs["max_tokens"] = self._max_tokens
        if self._timeout is not None:
            call_kwargs["timeout"] = self._timeout

        try:
            return await acompletion(**call_kwargs)
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            payload = getattr(e, "body", None)
            logger.debug(f"acompletion failed (status={status_code}): {e}")
            raise ProviderCallFailedError(
                str(e) or type(e).__name__,
                status_code=status_code,
                payload=payload,
                cause=e,
            ) from e
