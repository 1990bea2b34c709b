"""
chatcore CLI entry point.

Provides command-line access to the completion orchestrator for manual
testing against a real provider.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from chatcore import __version__
from chatcore.config.logging import get_logger, setup_logging
from chatcore.config.settings import Settings, load_settings
from chatcore.llm import CompletionOrchestrator, LLMError, Message

DEFAULT_SYSTEM = "You are a helpful assistant."


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="chatcore",
        description="Windowed, retrying chat completions with function-call support",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"chatcore {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "config",
        help="Show current configuration",
    )

    # Both completion commands share the model options
    model_options = argparse.ArgumentParser(add_help=False)
    model_options.add_argument(
        "--system",
        default=DEFAULT_SYSTEM,
        help=f"System message content (default: {DEFAULT_SYSTEM!r})",
    )
    model_options.add_argument(
        "--model",
        default=None,
        help="Model id (default: LLM_MODEL from config)",
    )
    model_options.add_argument(
        "--temperature",
        type=float,
        default=None,
        help="Sampling temperature (default: LLM_TEMPERATURE from config)",
    )

    ask_parser = subparsers.add_parser(
        "ask",
        parents=[model_options],
        help="Send a single prompt and print the reply text",
    )
    ask_parser.add_argument(
        "prompt",
        help='Prompt to send as the user message, e.g. "What is 2+2?"',
    )

    chat_parser = subparsers.add_parser(
        "chat",
        parents=[model_options],
        help="Complete a conversation read from a JSON file",
    )
    chat_parser.add_argument(
        "history_file",
        type=Path,
        help='JSON list of messages, e.g. [{"role": "user", "content": "2+2?"}]',
    )

    return parser


def load_history(path: Path) -> list[Message]:
    """
    Read a chat history from a JSON file.

    Raises:
        ValueError: If the file is not a JSON list of valid messages
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e}") from e
    try:
        return TypeAdapter(list[Message]).validate_python(data)
    except ValidationError as e:
        raise ValueError(f"{path} does not contain a list of messages: {e}") from e


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    print("\n=== chatcore Configuration ===\n")
    print(f"Environment: {settings.environment}")
    print(f"Log Level: {settings.log_level}")
    print(f"Log File: {settings.log_file or 'None (console only)'}")
    print(f"\nLLM Model: {settings.llm.model}")
    print(f"LLM Temperature: {settings.llm.temperature}")
    print(f"LLM API Key: {'Set' if settings.llm.api_key else 'Not set'}")
    print(f"LLM Max Retries: {settings.llm.max_retries}")
    print(f"LLM Retry Backoff: {settings.llm.retry_backoff_seconds}s")
    print(f"LLM Request Timeout: {settings.llm.request_timeout or 'None'}")
    print(f"Context Fraction: {settings.llm.context_fraction}")
    if settings.llm.model_char_budgets:
        print("Extra Model Budgets:")
        for model, chars in settings.llm.model_char_budgets.items():
            print(f"  {model}: {chars} chars")
    return 0


async def cmd_ask(args, settings: Settings) -> int:
    """Plain instruction/response completion."""
    logger = get_logger(__name__)

    model = args.model or settings.llm.model
    temperature = args.temperature if args.temperature is not None else settings.llm.temperature
    orchestrator = CompletionOrchestrator.from_settings(settings.llm)

    logger.info(f"Sending prompt to {model}...")
    try:
        text = await orchestrator.complete_instruction(
            system_content=args.system,
            prompt=args.prompt,
            model=model,
            temperature=temperature,
        )
    except LLMError as e:
        print(f"\nLLM error: {e}", file=sys.stderr)
        return 1

    print(text)
    return 0


async def cmd_chat(args, settings: Settings) -> int:
    """Complete a conversation loaded from a JSON file."""
    logger = get_logger(__name__)

    try:
        history = load_history(args.history_file)
    except (OSError, ValueError) as e:
        logger.error(f"Could not load history: {e}")
        return 1

    model = args.model or settings.llm.model
    temperature = args.temperature if args.temperature is not None else settings.llm.temperature
    orchestrator = CompletionOrchestrator.from_settings(settings.llm)

    logger.info(f"Completing {len(history)} messages with {model}...")
    try:
        message = await orchestrator.complete(
            history=history,
            system_content=args.system,
            model=model,
            temperature=temperature,
        )
    except LLMError as e:
        print(f"\nLLM error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(message.to_provider(), indent=2, ensure_ascii=False))
    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings)

    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "ask":
        return asyncio.run(cmd_ask(args, settings))
    elif args.command == "chat":
        return asyncio.run(cmd_chat(args, settings))
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
