"""
LLM Orchestration Layer.

Builds bounded prompts from conversation histories, calls the provider with
bounded retry, and validates the response:

    ChatHistory  →  ContextWindowBuilder  →  RetryingInvoker  →  ProviderClient
                                                                      ↓
    caller  ←  Message(role, content, function_call)  ←  response validation

Function calls in the response are returned to the caller, who dispatches
them through chatcore.functions.
"""

from chatcore.llm.context_window import ContextWindowBuilder
from chatcore.llm.models import (
    ChatHistory,
    FunctionCallRequest,
    LLMError,
    Message,
    ProviderCallFailedError,
    ProviderExhaustedError,
    ProviderRequest,
    ProviderResponse,
    ProviderResponseInvalidError,
    Role,
    UnknownModelError,
)
from chatcore.llm.orchestrator import CompletionOrchestrator
from chatcore.llm.provider import LiteLLMProviderClient, ProviderClient
from chatcore.llm.retry import MAX_RETRIES, RetryingInvoker

__all__ = [
    "MAX_RETRIES",
    "ChatHistory",
    "CompletionOrchestrator",
    "ContextWindowBuilder",
    "FunctionCallRequest",
    "LLMError",
    "LiteLLMProviderClient",
    "Message",
    "ProviderCallFailedError",
    "ProviderClient",
    "ProviderExhaustedError",
    "ProviderRequest",
    "ProviderResponse",
    "ProviderResponseInvalidError",
    "RetryingInvoker",
    "Role",
    "UnknownModelError",
]
