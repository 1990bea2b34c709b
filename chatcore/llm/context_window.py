"""
Context window selection.

Conversation histories grow without bound, but the provider accepts a fixed
amount of context. ContextWindowBuilder keeps the most recent messages that
fit under an approximate character budget and prepends the system message.

Sizes are measured as the length of each message's compact JSON encoding,
a cheap stand-in for tokens (roughly four characters per token for English
text). Budgets are deliberately conservative: only ``fraction`` of the
model's approximate capacity is filled, leaving room for the completion.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from chatcore.config.logging import get_logger
from chatcore.llm.models import ChatHistory, Message, UnknownModelError

logger = get_logger(__name__)

# Approximate context capacity in characters (tokens * 4)
MODEL_CHAR_BUDGETS: dict[str, int] = {
    "gpt-4": 8000 * 4,
    "gpt-4-0613": 8000 * 4,
    "gpt-4-32k": 32000 * 4,
    "gpt-4-32k-0613": 32000 * 4,
    "gpt-3.5-turbo": 4000 * 4,
    "gpt-3.5-turbo-0613": 4000 * 4,
    "gpt-3.5-turbo-16k": 16000 * 4,
    "gpt-3.5-turbo-16k-0613": 16000 * 4,
}

FRACTION_OF_MAX_CHARS_TO_USE = 0.8


def serialized_length(value: Any) -> int:
    """Character length of the compact JSON encoding of ``value``."""
    if isinstance(value, Message):
        value = value.to_provider()
    return len(json.dumps(value, separators=(",", ":"), ensure_ascii=False))


class ContextWindowBuilder:
    """
    Selects the suffix of a history that fits the model's character budget.

    Args:
        budgets: Extra or overriding per-model character budgets, merged over
                 MODEL_CHAR_BUDGETS
        fraction: Share of the budget to fill (default: 0.8)
    """

    def __init__(
        self,
        budgets: Mapping[str, int] | None = None,
        fraction: float = FRACTION_OF_MAX_CHARS_TO_USE,
    ):
        if not 0.0 < fraction <= 1.0:
            raise ValueError(f"fraction must be in (0, 1], got {fraction}")
        self._budgets = {**MODEL_CHAR_BUDGETS, **(budgets or {})}
        self._fraction = fraction

    def approximate_max_chars(self, model: str) -> int:
        """
        Look up the model's approximate character capacity.

        Provider-prefixed ids (``openai/gpt-4``) fall back to the bare model
        name when the full id has no entry.

        Raises:
            UnknownModelError: If neither form of the id is in the table
        """
        if model in self._budgets:
            return self._budgets[model]
        bare = model.rsplit("/", 1)[-1]
        if bare in self._budgets:
            return self._budgets[bare]
        raise UnknownModelError(model)

    def max_chars(self, model: str) -> float:
        return self.approximate_max_chars(model) * self._fraction

    def build(
        self,
        history: ChatHistory,
        system_content: str,
        model: str,
        functions: list[dict[str, Any]] | None = None,
    ) -> ChatHistory:
        """
        Build the prompt: the system message followed by the newest messages that fit.

        The most recent message is always included, even when it alone
        exceeds the budget. Older messages are added one at a time until the
        next one would bring the total to or over the budget.

        Args:
            history: Full conversation, oldest first
            system_content: Content of the system message to prepend
            model: Model id used to look up the budget
            functions: Function descriptors that will accompany the prompt;
                       their size counts against the budget

        Returns:
            New list: system message, then a contiguous suffix of ``history``

        Raises:
            UnknownModelError: If the model has no budget entry
        """
        max_chars = self.max_chars(model)
        system_message = Message.system(system_content)

        if not history:
            return [system_message]

        base_chars = serialized_length(system_message) + serialized_length(functions)
        start = len(history) - 1
        total_chars = base_chars + serialized_length(history[start])
        logger.debug(
            f"build: base_chars={base_chars}, total_chars={total_chars}, max_chars={max_chars}"
        )

        while start > 0:
            next_chars = serialized_length(history[start - 1])
            if total_chars + next_chars >= max_chars:
                break
            start -= 1
            total_chars += next_chars

        if start > 0:
            logger.debug(
                f"build: dropped {start} of {len(history)} messages; total_chars={total_chars}"
            )
        return [system_message, *history[start:]]
