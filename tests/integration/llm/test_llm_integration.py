"""
Integration tests for the orchestration and function-calling layers.

These tests wire the real components together - LiteLLMProviderClient,
ContextWindowBuilder, RetryingInvoker, CompletionOrchestrator,
FunctionRegistry and DispatchEngine - and mock only ``litellm.acompletion``.
We never burn real API tokens in tests.

Test groups:
1. Registry → Orchestrator: descriptors reach the provider call in the
   ``functions`` field, deprecated ones included.
2. Full loop: the model requests a function, the caller dispatches it, the
   result goes back as a function message, and the model answers.
3. Failure paths across layer boundaries (provider errors, failing functions).
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from chatcore.config.settings import LLMSettings
from chatcore.functions import (
    DispatchEngine,
    FunctionCallInvalid,
    FunctionDescriptor,
    FunctionRegistry,
    FunctionSucceeded,
    FunctionThrew,
    function_result_message,
)
from chatcore.llm import (
    CompletionOrchestrator,
    Message,
    ProviderExhaustedError,
    Role,
)

SYSTEM = "You are a weather assistant. Be terse."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _text_response(text: str) -> dict:
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": text}}]}


def _function_call_response(name: str, arguments: dict) -> dict:
    return {
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": None,
                    "function_call": {"name": name, "arguments": json.dumps(arguments)},
                },
            }
        ]
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def weather_body():
    return AsyncMock(return_value={"temperature": "72F"})


@pytest.fixture
def registry(weather_body):
    registry = FunctionRegistry()
    registry.register(
        FunctionDescriptor(
            name="FetchWeather",
            description="Fetch the forecast for a place and day",
            parameters={
                "type": "object",
                "properties": {
                    "where": {"type": "string", "description": "City name"},
                    "when": {"type": "string", "description": "Day, e.g. 'today'"},
                },
                "required": ["where", "when"],
            },
        ),
        weather_body,
    )
    registry.register(
        FunctionDescriptor(
            name="FetchWeatherLegacy",
            description="Old forecast endpoint",
            parameters={"type": "object", "properties": {"city": {"type": "string"}}},
        ),
        AsyncMock(return_value={"temp": 70}),
    )
    registry.register(
        FunctionDescriptor(
            name="EndConversation",
            description="Call when the user says goodbye",
            is_no_op=True,
        )
    )
    return registry.freeze()


@pytest.fixture
def settings():
    return LLMSettings(api_key="sk-integration-secret", max_retries=3)


@pytest.fixture
def orchestrator(settings):
    return CompletionOrchestrator.from_settings(settings)


# ---------------------------------------------------------------------------
# 1. Registry → Orchestrator
# ---------------------------------------------------------------------------

class TestFunctionDescriptorsReachProvider:

    @pytest.mark.asyncio
    async def test_functions_field_sent(self, orchestrator, registry):
        functions = registry.describe_for_provider({"FetchWeather", "EndConversation"})

        with patch(
            "chatcore.llm.provider.acompletion",
            new_callable=AsyncMock,
            return_value=_text_response("Hi."),
        ) as mock_call:
            await orchestrator.complete([Message.user("hello")], SYSTEM, "gpt-4", 0, functions)

        sent = mock_call.await_args.kwargs["functions"]
        assert [f["name"] for f in sent] == ["FetchWeather", "FetchWeatherLegacy", "EndConversation"]
        assert sent[1]["description"] == "DEPRECATED: Old forecast endpoint"
        assert mock_call.await_args.kwargs["api_key"] == "sk-integration-secret"


# ---------------------------------------------------------------------------
# 2. Full function-calling loop
# ---------------------------------------------------------------------------

class TestFunctionCallingLoop:

    @pytest.mark.asyncio
    async def test_weather_round_trip(self, orchestrator, registry, weather_body):
        engine = DispatchEngine(registry)
        functions = registry.describe_for_provider()
        history = [Message.user("What's the weather in Chicago today?")]

        with patch(
            "chatcore.llm.provider.acompletion",
            new_callable=AsyncMock,
            side_effect=[
                _function_call_response("FetchWeather", {"where": "Chicago", "when": "today"}),
                _text_response("72F in Chicago today."),
            ],
        ) as mock_call:
            reply = await orchestrator.complete(history, SYSTEM, "gpt-4", 0, functions)
            assert reply.function_call is not None
            history.append(reply)

            result = await engine.dispatch(reply, context={"history": history})
            assert result == FunctionSucceeded(result={"temperature": "72F"})
            history.append(function_result_message(reply.function_call.name, result))

            final = await orchestrator.complete(history, SYSTEM, "gpt-4", 0, functions)

        assert final.role == Role.ASSISTANT
        assert final.content == "72F in Chicago today."
        weather_body.assert_awaited_once()

        second_messages = mock_call.await_args_list[1].kwargs["messages"]
        assert second_messages[0] == {"role": "system", "content": SYSTEM}
        assert second_messages[-1] == {
            "role": "function",
            "name": "FetchWeather",
            "content": '{"temperature": "72F"}',
        }
        assert second_messages[-2]["function_call"]["name"] == "FetchWeather"

    @pytest.mark.asyncio
    async def test_invalid_call_fed_back_to_model(self, orchestrator, registry):
        engine = DispatchEngine(registry)

        with patch(
            "chatcore.llm.provider.acompletion",
            new_callable=AsyncMock,
            return_value=_function_call_response("FetchWeather", {"where": "Chicago"}),
        ):
            reply = await orchestrator.complete([Message.user("weather?")], SYSTEM, "gpt-4", 0)

        result = await engine.dispatch(reply)
        feedback = function_result_message(reply.function_call.name, result)

        assert isinstance(result, FunctionCallInvalid)
        assert feedback.content.startswith("Error: invalid arguments for function FetchWeather")

    @pytest.mark.asyncio
    async def test_no_op_acknowledged_without_execution(self, orchestrator, registry):
        with patch(
            "chatcore.llm.provider.acompletion",
            new_callable=AsyncMock,
            return_value=_function_call_response("EndConversation", {}),
        ):
            reply = await orchestrator.complete([Message.user("bye")], SYSTEM, "gpt-4", 0)

        result = await DispatchEngine(registry).dispatch(reply)

        assert result == FunctionSucceeded(result=None)

    @pytest.mark.asyncio
    async def test_failing_function_does_not_abort_conversation(
        self, orchestrator, registry, weather_body
    ):
        weather_body.side_effect = ConnectionError("forecast API unreachable")

        with patch(
            "chatcore.llm.provider.acompletion",
            new_callable=AsyncMock,
            return_value=_function_call_response("FetchWeather", {"where": "Oslo", "when": "today"}),
        ):
            reply = await orchestrator.complete([Message.user("Oslo?")], SYSTEM, "gpt-4", 0)

        result = await DispatchEngine(registry).dispatch(reply)

        assert isinstance(result, FunctionThrew)
        assert "forecast API unreachable" in function_result_message("FetchWeather", result).content


# ---------------------------------------------------------------------------
# 3. Failure paths
# ---------------------------------------------------------------------------

class TestProviderFailures:

    @pytest.mark.asyncio
    async def test_exhaustion_does_not_leak_api_key(self, orchestrator):
        with patch(
            "chatcore.llm.provider.acompletion",
            new_callable=AsyncMock,
            side_effect=RuntimeError("503 Service Unavailable"),
        ) as mock_call:
            with pytest.raises(ProviderExhaustedError) as exc_info:
                await orchestrator.complete([Message.user("2+2?")], SYSTEM, "gpt-4", 0)

        assert mock_call.await_count == 3
        message = str(exc_info.value)
        assert "giving up after 3 attempts" in message
        assert "503 Service Unavailable" in message
        assert '"model": "gpt-4"' in message
        assert "sk-integration-secret" not in message

    @pytest.mark.asyncio
    async def test_attribute_style_response_accepted(self, orchestrator):
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(role="assistant", content="4"))]
        )

        with patch(
            "chatcore.llm.provider.acompletion", new_callable=AsyncMock, return_value=response
        ):
            text = await orchestrator.complete_instruction(SYSTEM, "2+2?", "gpt-4", 0)

        assert text == "4"
