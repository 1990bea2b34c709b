"""
Dispatch Engine - resolves, validates and executes one model-requested function call.

State machine over a single assistant message:

    parse arguments JSON ──fail──> FunctionCallInvalid
          │
    look up function ─────missing─> FunctionCallInvalid
          │
    validate against schema ─fail─> FunctionCallInvalid
          │
    no-op? ────────────────yes───> FunctionSucceeded(None)   (body never runs)
          │
    execute body ──────────raise─> FunctionThrew(error)
          │
          └───────────────────────> FunctionSucceeded(result)

Nothing here raises for a bad call or a failing function: the outcome is
returned as data so one misbehaving function cannot abort the conversation.
"""

from __future__ import annotations

import inspect
import json
from typing import Any

from chatcore.config.logging import get_logger
from chatcore.functions.base import (
    DispatchResult,
    FunctionCallInvalid,
    FunctionSucceeded,
    FunctionThrew,
)
from chatcore.functions.registry import FunctionRegistry
from chatcore.llm.debug import truncate
from chatcore.llm.models import Message

logger = get_logger(__name__)

# Longest slice of rejected arguments echoed back in an error message
ECHO_CHARS = 200


class DispatchEngine:
    """
    Dispatches function calls against a registry.

    Only the message's single ``function_call`` is considered; there is no
    parallel multi-call dispatch.

    Args:
        registry: The (normally frozen) function registry
    """

    def __init__(self, registry: FunctionRegistry):
        self._registry = registry

    @property
    def registry(self) -> FunctionRegistry:
        return self._registry

    async def dispatch(self, message: Message, context: Any = None) -> DispatchResult:
        """
        Dispatch the function call carried by ``message``.

        Args:
            message: Assistant message with a ``function_call``
            context: Orchestration state passed through to the function body

        Returns:
            Exactly one of FunctionCallInvalid, FunctionSucceeded, FunctionThrew
        """
        function_call = message.function_call
        if function_call is None:
            return FunctionCallInvalid(
                error_message="message does not request a function call"
            )

        function_name = function_call.name
        arguments_string = function_call.arguments or "{}"

        # Deeply nested input exhausts the decoder's recursion limit
        try:
            args = json.loads(arguments_string)
        except (json.JSONDecodeError, RecursionError):
            return FunctionCallInvalid(
                error_message="invalid JSON string for arguments: "
                              + truncate(arguments_string, ECHO_CHARS)
            )
        if not isinstance(args, dict):
            return FunctionCallInvalid(
                error_message=f"arguments for function {function_name} must be a JSON object: "
                              + truncate(arguments_string, ECHO_CHARS)
            )

        descriptor = self._registry.lookup(function_name)
        if descriptor is None:
            return FunctionCallInvalid(error_message=f"unknown function {function_name}")

        errors = self._registry.validate_arguments(function_name, args)
        if errors:
            return FunctionCallInvalid(
                error_message=f"invalid arguments for function {function_name}: "
                              + "; ".join(errors)
            )

        if descriptor.is_no_op:
            logger.debug(f"Function {function_name} is a no-op; not executing")
            return FunctionSucceeded(result=None)

        body = self._registry.executable(function_name)
        try:
            result = body(context, args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Function {function_name} threw: {e}", exc_info=True)
            return FunctionThrew(error=e)

        return FunctionSucceeded(result=result)

    async def dispatch_last(self, history: list[Message], context: Any = None) -> DispatchResult:
        """Dispatch the function call of the last message in ``history``."""
        if not history:
            return FunctionCallInvalid(error_message="history is empty")
        return await self.dispatch(history[-1], context)
