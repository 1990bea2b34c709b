"""
Completion Orchestrator - turns a conversation history into one model response.

Data flow:
    ChatHistory + system content
              ↓
    ContextWindowBuilder.build()   →  windowed prompt (system + newest turns)
              ↓
    ProviderRequest                →  RetryingInvoker → ProviderClient
              ↓
    response validation            →  ProviderResponseInvalidError if unusable
              ↓
    Message(role, content, function_call)  →  caller

Design decisions:
- Orchestration and dispatch are decoupled. When the response carries a
  function call it is returned untouched; the caller decides whether to log,
  persist, filter or hand it to the DispatchEngine.
- Only the provider request is retried. It is idempotent; function bodies
  may have side effects and are never repeated here.
- Fatal errors carry the request payload (model, temperature, messages,
  functions) for diagnosis. Credentials stay on the provider client and are
  never part of that payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from chatcore.config.logging import get_logger
from chatcore.config.settings import LLMSettings
from chatcore.llm.context_window import ContextWindowBuilder
from chatcore.llm.debug import history_debug_concise, message_debug_one_line
from chatcore.llm.models import (
    ChatHistory,
    Message,
    ProviderRequest,
    ProviderResponse,
    ProviderResponseInvalidError,
)
from chatcore.llm.provider import LiteLLMProviderClient, ProviderClient
from chatcore.llm.retry import RetryingInvoker

logger = get_logger(__name__)


class CompletionOrchestrator:
    """
    Builds the prompt, calls the provider with retry, and validates the answer.

    Stateless per call: every complete() windows the history it is given
    and sends exactly one (possibly retried) provider request.

    Args:
        provider: Client that performs the chat completion call
        window_builder: Context window selection (default: ContextWindowBuilder())
        invoker: Retry wrapper for the provider call (default: RetryingInvoker())
    """

    def __init__(
        self,
        provider: ProviderClient,
        window_builder: ContextWindowBuilder | None = None,
        invoker: RetryingInvoker | None = None,
    ):
        self._provider = provider
        self._window_builder = window_builder or ContextWindowBuilder()
        self._invoker = invoker or RetryingInvoker()

    @classmethod
    def from_settings(
        cls,
        settings: LLMSettings,
        provider: ProviderClient | None = None,
    ) -> CompletionOrchestrator:
        """
        Wire an orchestrator from settings.

        Args:
            settings: LLM configuration (retries, budgets, credentials)
            provider: Explicit provider client; a LiteLLMProviderClient built
                      from ``settings`` when omitted
        """
        return cls(
            provider=provider or LiteLLMProviderClient.from_settings(settings),
            window_builder=ContextWindowBuilder(
                budgets=settings.model_char_budgets,
                fraction=settings.context_fraction,
            ),
            invoker=RetryingInvoker(
                max_retries=settings.max_retries,
                backoff_base=settings.retry_backoff_seconds,
            ),
        )

    def _validate_response(self, raw: Any) -> ProviderResponse:
        """
        Check that the provider returned a usable chat completion.

        Accepts mappings, Pydantic-style objects exposing ``model_dump()``
        (as LiteLLM returns) and plain attribute objects.

        Raises:
            ProviderResponseInvalidError: If the response is missing or has
                                          no parsable first choice
        """
        if raw is None:
            raise ProviderResponseInvalidError("no response", response=None)

        data = raw.model_dump() if hasattr(raw, "model_dump") else raw
        try:
            if isinstance(data, dict):
                return ProviderResponse.model_validate(data)
            return ProviderResponse.model_validate(data, from_attributes=True)
        except ValidationError as e:
            raise ProviderResponseInvalidError(str(e), response=data, cause=e) from e

    async def complete(
        self,
        history: ChatHistory,
        system_content: str,
        model: str,
        temperature: float,
        functions: list[dict[str, Any]] | None = None,
    ) -> Message:
        """
        Get the model's next message for a conversation.

        Older messages may be dropped from the front of ``history`` to fit
        the model's context budget; the system message is always sent first.

        Args:
            history: Conversation so far, oldest first (system message excluded)
            system_content: Content of the system message to prepend
            model: Provider model id
            temperature: Sampling temperature
            functions: Function descriptors in provider format, e.g. from
                       FunctionRegistry.describe_for_provider(); omitted from
                       the request when None

        Returns:
            The response message. ``content`` is never None (empty string if
            the model sent none); ``function_call`` is passed through as-is.

        Raises:
            UnknownModelError: If the model has no context budget
            ProviderExhaustedError: If every provider attempt failed
            ProviderResponseInvalidError: If the response has no usable choice
        """
        prompt_messages = self._window_builder.build(history, system_content, model, functions)

        request = ProviderRequest(
            model=model,
            temperature=temperature,
            messages=prompt_messages,
            functions=functions,
        )

        raw = await self._invoker.invoke(
            lambda: self._provider.create_chat_completion(request),
            request=request.to_payload(),
        )

        response = self._validate_response(raw)
        response_message = response.choices[0].message

        message = Message(
            role=response_message.role,
            content=response_message.content or "",
            function_call=response_message.function_call,
        )
        logger.debug(
            f"==== complete prompt:\n{history_debug_concise(prompt_messages)}"
            f"==== completion:\n{message_debug_one_line(message)}\n===="
        )
        return message

    async def complete_instruction(
        self,
        system_content: str,
        prompt: str,
        model: str,
        temperature: float,
    ) -> str:
        """
        Use the chat model as a plain instruction-following completion model.

        Sends the system message and ``prompt`` as a single user turn, with
        no functions, through the same windowing, retry and validation path.

        Returns:
            The text of the model's reply (empty string if none)
        """
        message = await self.complete(
            history=[Message.user(prompt)],
            system_content=system_content,
            model=model,
            temperature=temperature,
        )
        return message.content or ""
