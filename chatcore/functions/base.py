"""
Function descriptors and dispatch results.

A FunctionDescriptor is what the model sees: a unique name, a description
and a JSON schema for the arguments. A no-op descriptor has no executable
body; its invocation is acknowledged and interpreted by surrounding code.

DispatchResult is a tagged union with exactly three variants:

    FunctionCallInvalid  - the call could not be resolved or its arguments
                           were rejected (bad JSON, unknown name, schema error)
    FunctionSucceeded    - the body ran (or was a no-op) and returned a value
    FunctionThrew        - the body raised; the exception is kept as data

Callers branch on ``result.type`` (or isinstance) and typically feed the
outcome back to the model with function_result_message().
"""

from __future__ import annotations

import copy
import json
from typing import Annotated, Any, Awaitable, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from chatcore.llm.models import Message, Role

# Executable body: (orchestration context, validated arguments) -> value or awaitable
FunctionBody = Callable[[Any, dict[str, Any]], Union[Any, Awaitable[Any]]]


class FunctionDescriptor(BaseModel):
    """Metadata for a callable function, as registered and as described to the model."""

    name: str = Field(min_length=1, description="Unique function name within a registry")
    description: str = Field(description="What the function does, for the model")
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema for the arguments object",
    )
    is_no_op: bool = Field(
        default=False,
        description="If True there is no body; surrounding code interprets the call",
    )

    model_config = ConfigDict(frozen=True)

    def to_provider(self, deprecated: bool = False) -> dict[str, Any]:
        description = f"DEPRECATED: {self.description}" if deprecated else self.description
        return {
            "name": self.name,
            "description": description,
            "parameters": copy.deepcopy(self.parameters),
        }


class FunctionCallInvalid(BaseModel):
    type: Literal["FunctionCallInvalid"] = "FunctionCallInvalid"
    error_message: str

    model_config = ConfigDict(frozen=True)


class FunctionSucceeded(BaseModel):
    type: Literal["FunctionSucceeded"] = "FunctionSucceeded"
    result: Any = None

    model_config = ConfigDict(frozen=True)


class FunctionThrew(BaseModel):
    type: Literal["FunctionThrew"] = "FunctionThrew"
    error: Exception

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


DispatchResult = Annotated[
    Union[FunctionCallInvalid, FunctionSucceeded, FunctionThrew],
    Field(discriminator="type"),
]


def function_result_message(name: str, result: DispatchResult) -> Message:
    """
    Build the ``role=function`` message that reports a dispatch outcome to the model.

    Successful results are JSON-encoded (non-JSON values via ``str``; a
    result with non-finite floats is sent as its ``str`` in a JSON string);
    invalid calls and raised errors become an ``Error: ...`` description so
    the model can correct itself or explain the failure.
    """
    if isinstance(result, FunctionSucceeded):
        try:
            content = json.dumps(result.result, default=str, allow_nan=False)
        except ValueError:
            # NaN/Infinity or a circular structure
            content = json.dumps(str(result.result))
    elif isinstance(result, FunctionCallInvalid):
        content = f"Error: {result.error_message}"
    elif isinstance(result, FunctionThrew):
        content = f"Error: function {name} threw {type(result.error).__name__}: {result.error}"
    else:
        raise TypeError(f"not a dispatch result: {result!r}")
    return Message(role=Role.FUNCTION, name=name, content=content)
