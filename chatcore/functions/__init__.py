"""
Function calling layer.

Declares model-callable functions, validates the arguments the model sends,
and turns each call into a DispatchResult:

    assistant message (function_call)
              ↓
    DispatchEngine.dispatch()  →  FunctionRegistry (lookup + schema check)
              ↓
    FunctionCallInvalid | FunctionSucceeded | FunctionThrew
              ↓
    function_result_message()  →  appended to the history by the caller
"""

from chatcore.functions.base import (
    DispatchResult,
    FunctionCallInvalid,
    FunctionDescriptor,
    FunctionSucceeded,
    FunctionThrew,
    function_result_message,
)
from chatcore.functions.dispatch import DispatchEngine
from chatcore.functions.registry import FunctionRegistry
from chatcore.functions.validation import JsonSchemaValidator, SchemaValidator

__all__ = [
    "DispatchEngine",
    "DispatchResult",
    "FunctionCallInvalid",
    "FunctionDescriptor",
    "FunctionRegistry",
    "FunctionSucceeded",
    "FunctionThrew",
    "JsonSchemaValidator",
    "SchemaValidator",
    "function_result_message",
]
