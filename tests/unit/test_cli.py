"""
Tests for the chatcore CLI.

Parser-level tests check the subcommands and their options; command tests
patch the orchestrator so no provider is contacted.
"""

import json
from argparse import Namespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chatcore.__main__ import DEFAULT_SYSTEM, cmd_ask, cmd_chat, cmd_config, create_parser, load_history
from chatcore.config.settings import Settings
from chatcore.llm.models import (
    FunctionCallRequest,
    Message,
    ProviderExhaustedError,
    Role,
)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def history_file(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps([
        {"role": "user", "content": "What's the weather in Chicago?"},
        {
            "role": "assistant",
            "content": None,
            "function_call": {"name": "FetchWeather", "arguments": "{\"where\": \"Chicago\"}"},
        },
        {"role": "function", "name": "FetchWeather", "content": "{\"temperature\": \"72F\"}"},
    ]))
    return path


def _mock_orchestrator(**methods):
    orchestrator = MagicMock()
    for name, value in methods.items():
        setattr(orchestrator, name, value)
    factory = MagicMock()
    factory.from_settings.return_value = orchestrator
    return factory, orchestrator


class TestParser:

    def test_ask_subcommand(self):
        args = create_parser().parse_args(["ask", "2+2?"])
        assert args.command == "ask"
        assert args.prompt == "2+2?"
        assert args.system == DEFAULT_SYSTEM
        assert args.model is None
        assert args.temperature is None

    def test_ask_model_options(self):
        args = create_parser().parse_args(
            ["ask", "2+2?", "--system", "You are terse.", "--model", "gpt-4", "--temperature", "0"]
        )
        assert args.system == "You are terse."
        assert args.model == "gpt-4"
        assert args.temperature == 0.0

    def test_chat_requires_history_file(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["chat"])

    def test_chat_history_path(self, tmp_path):
        args = create_parser().parse_args(["chat", str(tmp_path / "h.json")])
        assert args.history_file == tmp_path / "h.json"

    def test_global_options(self):
        args = create_parser().parse_args(["--log-level", "DEBUG", "config"])
        assert args.log_level == "DEBUG"
        assert args.command == "config"


class TestLoadHistory:

    def test_loads_messages(self, history_file):
        history = load_history(history_file)

        assert [m.role for m in history] == [Role.USER, Role.ASSISTANT, Role.FUNCTION]
        assert history[1].function_call == FunctionCallRequest(
            name="FetchWeather", arguments='{"where": "Chicago"}'
        )
        assert history[2].name == "FetchWeather"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[{")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_history(path)

    def test_not_a_message_list(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"role": "user"}))
        with pytest.raises(ValueError, match="list of messages"):
            load_history(path)


class TestCommands:

    def test_config_hides_api_key(self, settings, capsys):
        settings.llm.api_key = "sk-very-secret"

        assert cmd_config(settings) == 0

        out = capsys.readouterr().out
        assert "LLM API Key: Set" in out
        assert "sk-very-secret" not in out

    @pytest.mark.asyncio
    async def test_ask_prints_reply(self, settings, capsys):
        factory, orchestrator = _mock_orchestrator(
            complete_instruction=AsyncMock(return_value="4")
        )
        args = Namespace(prompt="2+2?", system="You are terse.", model=None, temperature=None)

        with patch("chatcore.__main__.CompletionOrchestrator", factory):
            code = await cmd_ask(args, settings)

        assert code == 0
        assert capsys.readouterr().out.strip() == "4"
        orchestrator.complete_instruction.assert_awaited_once_with(
            system_content="You are terse.",
            prompt="2+2?",
            model=settings.llm.model,
            temperature=settings.llm.temperature,
        )

    @pytest.mark.asyncio
    async def test_ask_reports_llm_error(self, settings, capsys):
        factory, _ = _mock_orchestrator(
            complete_instruction=AsyncMock(side_effect=ProviderExhaustedError(5, RuntimeError("down")))
        )
        args = Namespace(prompt="2+2?", system="S", model="gpt-4", temperature=0.0)

        with patch("chatcore.__main__.CompletionOrchestrator", factory):
            code = await cmd_ask(args, settings)

        assert code == 1
        assert "giving up after 5 attempts" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_chat_prints_message_json(self, settings, history_file, capsys):
        factory, orchestrator = _mock_orchestrator(
            complete=AsyncMock(return_value=Message.assistant("It's 72F in Chicago."))
        )
        args = Namespace(history_file=history_file, system="S", model="gpt-4", temperature=0.5)

        with patch("chatcore.__main__.CompletionOrchestrator", factory):
            code = await cmd_chat(args, settings)

        assert code == 0
        printed = json.loads(capsys.readouterr().out)
        assert printed == {"role": "assistant", "content": "It's 72F in Chicago."}
        kwargs = orchestrator.complete.await_args.kwargs
        assert len(kwargs["history"]) == 3
        assert kwargs["temperature"] == 0.5

    @pytest.mark.asyncio
    async def test_chat_missing_file(self, settings, tmp_path):
        args = Namespace(history_file=tmp_path / "missing.json", system="S", model=None, temperature=None)
        assert await cmd_chat(args, settings) == 1
