"""
Data models and error types for the LLM orchestration layer.

Messages are immutable Pydantic models; a ChatHistory is a plain list of
them in turn order. The request/response models describe the provider wire
shape (OpenAI chat completions with the ``functions`` field), and the error
hierarchy separates fatal failures from the transient provider failures the
retry wrapper absorbs.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Author of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


class FunctionCallRequest(BaseModel):
    """A model's request to invoke a named function with raw JSON arguments."""

    name: str = Field(description="Name of the requested function")
    arguments: str = Field(
        default="",
        description="Arguments as the model produced them (JSON text, unparsed)",
    )

    model_config = ConfigDict(frozen=True)


class Message(BaseModel):
    """
    A single turn in a conversation.

    ``content`` may be None for assistant turns that only carry a function
    call; ``name`` identifies the function for ``role=function`` results.
    """

    role: Role
    content: str | None = None
    name: str | None = None
    function_call: FunctionCallRequest | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls, content: str | None = None, function_call: FunctionCallRequest | None = None
    ) -> Message:
        return cls(role=Role.ASSISTANT, content=content, function_call=function_call)

    def to_provider(self) -> dict[str, Any]:
        """Wire representation; ``content`` is always present, other unset fields are omitted."""
        data: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.name is not None:
            data["name"] = self.name
        if self.function_call is not None:
            data["function_call"] = {
                "name": self.function_call.name,
                "arguments": self.function_call.arguments,
            }
        return data


ChatHistory = list[Message]


class ProviderRequest(BaseModel):
    """
    A chat completion request, exactly as it will be sent to the provider.

    Credentials are deliberately not part of this model: the payload is
    attached to fatal errors for diagnosis and must be safe to log.
    """

    model: str
    temperature: float
    messages: list[Message]
    functions: list[dict[str, Any]] | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [m.to_provider() for m in self.messages],
        }
        if self.functions is not None:
            payload["functions"] = self.functions
        return payload


class ProviderMessage(BaseModel):
    """The message inside a completion choice."""

    role: Role = Role.ASSISTANT
    content: str | None = None
    function_call: FunctionCallRequest | None = None

    model_config = ConfigDict(extra="ignore")


class ProviderChoice(BaseModel):
    message: ProviderMessage

    model_config = ConfigDict(extra="ignore")


class ProviderResponse(BaseModel):
    """Minimal validated shape of a chat completion response."""

    choices: list[ProviderChoice] = Field(min_length=1)

    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class LLMError(Exception):
    """
    Base class for fatal orchestration errors.

    Args:
        message: Human-readable description
        cause: The underlying exception, if any
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class UnknownModelError(LLMError):
    """The model id has no context budget entry. Never retried."""

    def __init__(self, model: str):
        super().__init__(f"unknown model: {model}")
        self.model = model


class ProviderCallFailedError(LLMError):
    """
    A single provider call failed (transport, HTTP status, provider error).

    Transient: the retry wrapper counts it against its budget.

    Args:
        message: Description of the failure
        status_code: HTTP-like status reported by the provider, if any
        payload: Provider-supplied error body, if any
        cause: The underlying SDK exception
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
        cause: BaseException | None = None,
    ):
        full_message = message
        if payload is not None:
            full_message += ": " + _to_json(payload)
        super().__init__(full_message, cause=cause)
        self.status_code = status_code
        self.payload = payload


class ProviderExhaustedError(LLMError):
    """
    The provider call failed on every attempt.

    The message includes the attempt count, the last underlying error and
    the request payload (which never contains credentials).
    """

    def __init__(
        self,
        retries: int,
        last_error: BaseException | None,
        request: dict[str, Any] | None = None,
    ):
        last_message = str(last_error) if last_error is not None else "unknown error"
        message = f"error calling provider: giving up after {retries} attempts: {last_message}"
        if request is not None:
            message += "\nHere was the request:\n" + _to_json(request)
        super().__init__(message, cause=last_error)
        self.retries = retries
        self.last_error = last_error
        self.request = request


class ProviderResponseInvalidError(LLMError):
    """The provider answered, but not with a usable chat completion. Never retried."""

    def __init__(self, message: str, response: Any = None, cause: BaseException | None = None):
        super().__init__(
            f"provider response validation error: {message}\nresponse:\n{_to_json(response)}",
            cause=cause,
        )
        self.response = response


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)
