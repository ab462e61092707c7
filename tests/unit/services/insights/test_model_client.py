"""Unit tests for the model client: JSON extraction and error mapping."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from app.services.insights.exceptions import (
    ModelConfigurationError,
    ModelHttpError,
    ModelTimeoutError,
    ResponseParseError,
)
from app.services.insights.model_client import (
    ModelClient,
    parse_json_payload,
    strip_code_fence,
)
from app.services.insights.prompts import JSON_ONLY_INSTRUCTION

from tests.helpers.mock_factories import make_model_response

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _client_with(create: AsyncMock) -> ModelClient:
    client = ModelClient(api_key="test-key", model="test-model", timeout_seconds=1.0)
    sdk = MagicMock()
    sdk.messages.create = create
    client._client = sdk
    return client


# ═══════════════════════════════════════════════════════════════════════════
# JSON extraction
# ═══════════════════════════════════════════════════════════════════════════


class TestStripCodeFence:
    def test_json_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence_returns_stripped_text(self):
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'

    def test_inline_backticks_are_not_a_fence(self):
        text = '{"tip": "Run ```npm audit``` weekly"}'

        assert strip_code_fence(text) == text

    def test_fence_must_wrap_whole_text(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```\nThanks'

        assert strip_code_fence(text) == text


class TestParseJsonPayload:
    def test_bare_json(self):
        assert parse_json_payload('{"security_score": 0.7}') == {"security_score": 0.7}

    def test_fenced_json_equals_bare_json(self):
        bare = '{"quality_score": 0.6, "critical_issues": []}'
        fenced = f"```json\n{bare}\n```"

        assert parse_json_payload(fenced) == parse_json_payload(bare)

    def test_bare_json_with_backticks_in_string(self):
        text = '{"security_score": 0.4, "recommendations": ["Run ```npm audit``` weekly"]}'

        assert parse_json_payload(text) == {
            "security_score": 0.4,
            "recommendations": ["Run ```npm audit``` weekly"],
        }

    def test_fenced_json_with_backticks_in_string(self):
        body = '{"security_score": 0.4, "recommendations": ["Run ```npm audit``` weekly"]}'

        assert parse_json_payload(f"```json\n{body}\n```") == parse_json_payload(body)

    def test_extracts_fenced_object_from_prose(self):
        text = 'Here is the analysis:\n```json\n{"quality_score": 0.6}\n```\nHope it helps.'

        assert parse_json_payload(text) == {"quality_score": 0.6}

    def test_extracts_object_from_prose(self):
        text = 'Here is my analysis:\n{"performance_score": 0.9}\nLet me know!'

        assert parse_json_payload(text) == {"performance_score": 0.9}

    def test_no_object_raises_with_raw_text(self):
        with pytest.raises(ResponseParseError) as exc_info:
            parse_json_payload("I could not analyze this repository.")

        assert exc_info.value.raw_text == "I could not analyze this repository."

    def test_malformed_extracted_object_raises(self):
        text = 'Result: {"score": 0.5,, "oops"} done'

        with pytest.raises(ResponseParseError) as exc_info:
            parse_json_payload(text)

        assert exc_info.value.raw_text == text

    def test_non_object_json_raises(self):
        with pytest.raises(ResponseParseError):
            parse_json_payload("[1, 2, 3]")


# ═══════════════════════════════════════════════════════════════════════════
# Client lifecycle
# ═══════════════════════════════════════════════════════════════════════════


class TestClientLifecycle:
    def test_sdk_client_is_built_once_without_retries(self):
        client = ModelClient(api_key="test-key")

        sdk = client.client

        assert isinstance(sdk, anthropic.AsyncAnthropic)
        assert sdk.max_retries == 0
        assert client.client is sdk

    @pytest.mark.asyncio
    async def test_aclose_releases_sdk_client(self):
        client = ModelClient(api_key="test-key")
        sdk = MagicMock()
        sdk.close = AsyncMock()
        client._client = sdk

        await client.aclose()

        sdk.close.assert_awaited_once()
        assert client._client is None

    @pytest.mark.asyncio
    async def test_aclose_without_client_is_noop(self):
        client = ModelClient(api_key="test-key")

        await client.aclose()

        assert client._client is None


# ═══════════════════════════════════════════════════════════════════════════
# complete()
# ═══════════════════════════════════════════════════════════════════════════


class TestComplete:
    @pytest.mark.asyncio
    async def test_returns_parsed_object(self):
        response = make_model_response('```json\n{"security_score": 0.8}\n```')
        create = AsyncMock(return_value=response)
        client = _client_with(create)

        result = await client.complete("You are a code security specialist.", "prompt")

        assert result == {"security_score": 0.8}

    @pytest.mark.asyncio
    async def test_sends_persona_with_json_only_instruction(self):
        create = AsyncMock(return_value=make_model_response("{}"))
        client = _client_with(create)

        await client.complete("You are a release manager.", "the prompt")

        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["system"] == f"You are a release manager. {JSON_ONLY_INSTRUCTION}"
        assert kwargs["messages"] == [{"role": "user", "content": "the prompt"}]
        assert kwargs["temperature"] == client.temperature
        assert kwargs["max_tokens"] == client.max_tokens

    @pytest.mark.asyncio
    async def test_empty_text_is_parse_error(self):
        client = _client_with(AsyncMock(return_value=make_model_response("   ")))

        with pytest.raises(ResponseParseError):
            await client.complete("persona", "prompt")

    @pytest.mark.asyncio
    async def test_missing_api_key_is_configuration_error(self):
        client = ModelClient(api_key="")

        with pytest.raises(ModelConfigurationError):
            await client.complete("persona", "prompt")

    @pytest.mark.asyncio
    async def test_deadline_cancels_request(self):
        cancelled = asyncio.Event()

        async def slow_create(**_kwargs):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        client = _client_with(AsyncMock(side_effect=slow_create))
        client.timeout_seconds = 0.05

        with pytest.raises(ModelTimeoutError) as exc_info:
            await client.complete("persona", "prompt")

        assert exc_info.value.timeout_seconds == 0.05
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_transport_timeout_is_timeout_error(self):
        client = _client_with(AsyncMock(side_effect=anthropic.APITimeoutError(request=_REQUEST)))

        with pytest.raises(ModelTimeoutError):
            await client.complete("persona", "prompt")

    @pytest.mark.asyncio
    async def test_status_error_carries_status_code(self):
        error = anthropic.RateLimitError(
            "rate limited",
            response=httpx.Response(429, request=_REQUEST),
            body=None,
        )
        client = _client_with(AsyncMock(side_effect=error))

        with pytest.raises(ModelHttpError) as exc_info:
            await client.complete("persona", "prompt")

        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_connection_error_is_http_error_without_status(self):
        error = anthropic.APIConnectionError(request=_REQUEST)
        client = _client_with(AsyncMock(side_effect=error))

        with pytest.raises(ModelHttpError) as exc_info:
            await client.complete("persona", "prompt")

        assert exc_info.value.status_code is None
