"""
chatcore - orchestration core for multi-turn LLM conversations.

This package builds bounded prompts from long conversation histories, calls
the model provider with bounded retry, and dispatches model-requested
function calls through a schema-validated registry.
"""

__version__ = "0.1.0"
