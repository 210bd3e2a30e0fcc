"""Tests for the OpenAI chat completions client."""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from newsroom.clients.base import TextCompletionClient
from newsroom.clients.errors import (
    BackendError,
    ConfigurationError,
    EmptyOutputError,
    GenerationTimeout,
    TransportError,
)
from newsroom.clients.openai import OpenAIClient
from newsroom.models.generation import GenerationRequest


def _completion(content, finish_reason="stop", **message):
    return {
        "choices": [
            {
                "message": {"role": "assistant", "content": content, **message},
                "finish_reason": finish_reason,
            }
        ]
    }


class TestPayload:
    def test_build_payload_with_system_and_limits(self):
        client = OpenAIClient("test_key", model="gpt-test")
        request = GenerationRequest(
            prompt="Hello",
            system_instruction="Be brief",
            temperature=0.3,
            max_output_tokens=256,
        )

        payload = client.build_payload(request, "gpt-test", "max_completion_tokens", True)

        assert payload["model"] == "gpt-test"
        assert payload["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hello"},
        ]
        assert payload["temperature"] == 0.3
        assert payload["max_completion_tokens"] == 256
        assert payload["response_format"] == {"type": "json_object"}
        assert payload["stream"] is False

    def test_build_payload_omits_unset_options(self):
        client = OpenAIClient("test_key")
        payload = client.build_payload(
            GenerationRequest(prompt="Hello"), "gpt-4o-mini", "max_completion_tokens", False
        )

        assert payload["messages"] == [{"role": "user", "content": "Hello"}]
        assert "temperature" not in payload
        assert "max_completion_tokens" not in payload
        assert "response_format" not in payload

    def test_from_settings(self, mock_settings):
        client = OpenAIClient.from_settings(mock_settings)

        assert client.api_key == "test_key"
        assert client.default_model == mock_settings.openai_model
        assert client.token_param == "max_completion_tokens"
        assert client.alternate_token_param == "max_tokens"
        assert client.timeout == mock_settings.llm_timeout


class TestGenerateText:
    @pytest.mark.asyncio
    async def test_returns_trimmed_content(self):
        client = OpenAIClient("test_key")
        with patch.object(
            client, "_post_json", new=AsyncMock(return_value=_completion("  Hi there \n"))
        ) as post:
            result = await client.generate_text(GenerationRequest(prompt="Hello"))

        assert result == "Hi there"
        url, payload, headers, timeout = post.call_args.args
        assert url == "https://api.openai.com/v1/chat/completions"
        assert headers["Authorization"] == "Bearer test_key"
        assert timeout == 20.0

    @pytest.mark.asyncio
    async def test_content_parts_are_joined(self):
        client = OpenAIClient("test_key")
        data = _completion([{"type": "text", "text": "Hello "}, {"type": "text", "text": "world"}])
        with patch.object(client, "_post_json", new=AsyncMock(return_value=data)):
            result = await client.generate_text(GenerationRequest(prompt="Hi"))

        assert result == "Hello world"

    @pytest.mark.asyncio
    async def test_request_timeout_overrides_default(self):
        client = OpenAIClient("test_key", timeout=20)
        with patch.object(
            client, "_post_json", new=AsyncMock(return_value=_completion("ok"))
        ) as post:
            await client.generate_text(GenerationRequest(prompt="Hi", timeout=3))

        assert post.call_args.args[3] == 3

    @pytest.mark.asyncio
    async def test_missing_api_key_raises_configuration_error(self):
        client = OpenAIClient(None)
        with patch.object(client, "_post_json", new=AsyncMock()) as post:
            with pytest.raises(ConfigurationError):
                await client.generate_text(GenerationRequest(prompt="Hi"))

        post.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_content_raises_with_finish_reason(self):
        client = OpenAIClient("test_key")
        with patch.object(
            client, "_post_json", new=AsyncMock(return_value=_completion("", finish_reason="length"))
        ):
            with pytest.raises(EmptyOutputError) as exc_info:
                await client.generate_text(GenerationRequest(prompt="Hi"))

        assert exc_info.value.finish_reason == "length"
        assert "finish_reason=length" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_refusal_is_reported(self):
        client = OpenAIClient("test_key")
        data = _completion(None, refusal="I can't help with that.")
        with patch.object(client, "_post_json", new=AsyncMock(return_value=data)):
            with pytest.raises(EmptyOutputError) as exc_info:
                await client.generate_text(GenerationRequest(prompt="Hi"))

        assert exc_info.value.block_reason == "refusal"
        assert exc_info.value.feedback == {"refusal": "I can't help with that."}

    @pytest.mark.asyncio
    async def test_no_choices_raises_empty_output(self):
        client = OpenAIClient("test_key")
        with patch.object(client, "_post_json", new=AsyncMock(return_value={"choices": []})):
            with pytest.raises(EmptyOutputError):
                await client.generate_text(GenerationRequest(prompt="Hi"))


class TestTokenParameterRetry:
    @pytest.mark.asyncio
    async def test_rejected_parameter_is_swapped_once(self):
        client = OpenAIClient("test_key", token_param="A", alternate_token_param="B")
        rejection = BackendError(
            400, "Unsupported parameter: 'A' is not supported with this model.", param="A"
        )
        with patch.object(
            client,
            "_post_json",
            new=AsyncMock(side_effect=[rejection, _completion("hello world")]),
        ) as post:
            result = await client.generate_text(
                GenerationRequest(prompt="Hi", max_output_tokens=100)
            )

        assert result == "hello world"
        assert post.call_count == 2
        first_payload = post.call_args_list[0].args[1]
        second_payload = post.call_args_list[1].args[1]
        assert first_payload["A"] == 100
        assert second_payload["B"] == 100
        assert "A" not in second_payload

    @pytest.mark.asyncio
    async def test_second_rejection_is_not_retried(self):
        client = OpenAIClient("test_key")
        rejections = [
            BackendError(400, "Unsupported parameter", code="unsupported_parameter"),
            BackendError(400, "Unsupported parameter", code="unsupported_parameter"),
        ]
        with patch.object(
            client, "_post_json", new=AsyncMock(side_effect=rejections)
        ) as post:
            with pytest.raises(BackendError):
                await client.generate_text(
                    GenerationRequest(prompt="Hi", max_output_tokens=100)
                )

        assert post.call_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        client = OpenAIClient("test_key")
        with patch.object(
            client,
            "_post_json",
            new=AsyncMock(side_effect=BackendError(500, "max_completion_tokens exploded")),
        ) as post:
            with pytest.raises(BackendError):
                await client.generate_text(
                    GenerationRequest(prompt="Hi", max_output_tokens=100)
                )

        assert post.call_count == 1

    @pytest.mark.asyncio
    async def test_rejection_of_another_parameter_is_not_retried(self):
        client = OpenAIClient("test_key")
        rejection = BackendError(
            400,
            "Unsupported parameter: 'temperature' is not supported with this model.",
            param="temperature",
            code="unsupported_parameter",
        )
        with patch.object(
            client, "_post_json", new=AsyncMock(side_effect=rejection)
        ) as post:
            with pytest.raises(BackendError):
                await client.generate_text(
                    GenerationRequest(prompt="Hi", max_output_tokens=100, temperature=0.2)
                )

        assert post.call_count == 1

    @pytest.mark.asyncio
    async def test_no_retry_when_no_limit_was_sent(self):
        client = OpenAIClient("test_key")
        rejection = BackendError(400, "Unsupported parameter: 'max_completion_tokens'")
        with patch.object(
            client, "_post_json", new=AsyncMock(side_effect=rejection)
        ) as post:
            with pytest.raises(BackendError):
                await client.generate_text(GenerationRequest(prompt="Hi"))

        assert post.call_count == 1

    @pytest.mark.asyncio
    async def test_disabled_alternate_is_not_retried(self):
        client = OpenAIClient("test_key", alternate_token_param="")
        rejection = BackendError(400, "bad", param="max_completion_tokens")
        with patch.object(
            client, "_post_json", new=AsyncMock(side_effect=rejection)
        ) as post:
            with pytest.raises(BackendError):
                await client.generate_text(
                    GenerationRequest(prompt="Hi", max_output_tokens=50)
                )

        assert post.call_count == 1


class TestBackendError:
    @pytest.mark.parametrize(
        "error,expected",
        [
            (BackendError(400, "bad", param="max_tokens"), True),
            (BackendError(400, "bad", code="unsupported_parameter"), True),
            (BackendError(400, "Unsupported parameter: 'max_tokens'"), True),
            (BackendError(400, "max_tokens is not supported"), True),
            (BackendError(400, "prompt too long"), False),
            (BackendError(429, "max_tokens", param="max_tokens"), False),
            (BackendError(400, "Unsupported parameter: 'x'", param="x"), False),
            (
                BackendError(
                    400,
                    "Unsupported parameter: 'temperature'",
                    param="temperature",
                    code="unsupported_parameter",
                ),
                False,
            ),
        ],
    )
    def test_rejects_parameter(self, error, expected):
        assert error.rejects_parameter("max_tokens") is expected

    def test_backend_error_decodes_error_envelope(self):
        body = (
            '{"error": {"message": "Unsupported parameter", '
            '"param": "max_tokens", "code": "unsupported_parameter"}}'
        )
        error = TextCompletionClient._backend_error(400, body)

        assert error.status == 400
        assert error.message == "Unsupported parameter"
        assert error.param == "max_tokens"
        assert error.code == "unsupported_parameter"

    def test_backend_error_uses_status_when_code_is_numeric(self):
        body = '{"error": {"code": 403, "message": "denied", "status": "PERMISSION_DENIED"}}'
        error = TextCompletionClient._backend_error(403, body)

        assert error.code == "PERMISSION_DENIED"
        assert str(error) == "HTTP 403: denied"

    def test_backend_error_keeps_plain_body(self):
        error = TextCompletionClient._backend_error(502, "Bad Gateway")

        assert error.message == "Bad Gateway"
        assert error.param is None


class TestTransport:
    @pytest.mark.asyncio
    async def test_timeout_is_classified(self):
        client = OpenAIClient("test_key")
        with patch.object(
            aiohttp.ClientSession, "post", side_effect=asyncio.TimeoutError()
        ):
            with pytest.raises(GenerationTimeout) as exc_info:
                await client.generate_text(GenerationRequest(prompt="Hi", timeout=5))

        assert exc_info.value.timeout == 5

    @pytest.mark.asyncio
    async def test_connection_error_is_transport_error(self):
        client = OpenAIClient("test_key")
        with patch.object(
            aiohttp.ClientSession,
            "post",
            side_effect=aiohttp.ClientConnectionError("refused"),
        ):
            with pytest.raises(TransportError) as exc_info:
                await client.generate_text(GenerationRequest(prompt="Hi"))

        assert not isinstance(exc_info.value, GenerationTimeout)
