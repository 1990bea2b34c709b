"""Compact one-line renderings of messages and histories for log output."""

from chatcore.llm.models import ChatHistory, Message

_PREVIEW_CHARS = 50


def truncate(text: str, limit: int = _PREVIEW_CHARS) -> str:
    """Cut ``text`` to ``limit`` characters, marking the cut with ``...``."""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def message_debug_one_line(message: Message) -> str:
    content = truncate(message.content) if message.content else ""
    name = message.name or ""
    function_call = ""
    if message.function_call is not None:
        function_call = f"{message.function_call.name}({message.function_call.arguments})"
    return f"{message.role.value} {name}: {content} {function_call}"


def history_debug_concise(history: ChatHistory) -> str:
    """One line per message."""
    return "".join(message_debug_one_line(m) + "\n" for m in history)


def history_debug_very_concise(history: ChatHistory) -> str:
    """Message count plus the last two messages."""
    count = len(history)
    penultimate = message_debug_one_line(history[-2]) if count > 1 else "n/a"
    last = message_debug_one_line(history[-1]) if count > 0 else "n/a"
    return f"Number of messages: {count}\n[n-2]: {penultimate}\n[n-1]: {last}\n"
