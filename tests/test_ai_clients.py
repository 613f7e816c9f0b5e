"""
AI Clients 测试
OpenAI 兼容与 Google Gemini 适配器
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError

from mahoshojo.core.ai_providers import ProviderConfig
from mahoshojo.core.exceptions import AIGenerationError
from mahoshojo.services.ai_clients import (
    TOOL_NAME,
    GoogleCompatibleClient,
    OpenAICompatibleClient,
    get_ai_client,
)


def _provider(type_: str = "openai", mode: str | None = None) -> ProviderConfig:
    return ProviderConfig(
        name="P",
        api_key="sk-test",
        base_url="https://api.example.com/v1" if type_ == "openai" else "https://gemini.example.com/",
        model="m1",
        type=type_,
        mode=mode,
    )


def _chat_response(content=None, tool_arguments=None):
    message = MagicMock()
    message.content = content
    if tool_arguments is None:
        message.tool_calls = None
    else:
        call = MagicMock()
        call.function.arguments = tool_arguments
        message.tool_calls = [call]
    response = MagicMock()
    response.choices = [MagicMock(message=message)]
    return response


async def _call(client):
    return await client.generate(
        model="m1", system_prompt="system", user_prompt="user", temperature=0.5
    )


class TestOpenAICompatibleClient:
    """OpenAI 兼容适配器测试"""

    def test_client_disables_sdk_retries(self):
        client = OpenAICompatibleClient(_provider(), timeout=12)

        assert client.client.max_retries == 0
        assert str(client.client.base_url).startswith("https://api.example.com/v1")

    @pytest.mark.asyncio
    async def test_default_mode_uses_json_schema(self, sample_output_text):
        client = OpenAICompatibleClient(_provider())

        with patch.object(client, "client") as mock_client:
            mock_client.chat.completions.create = AsyncMock(
                return_value=_chat_response(content=sample_output_text)
            )
            result = await _call(client)

        assert result == sample_output_text
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "m1"
        assert kwargs["temperature"] == 0.5
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert kwargs["response_format"]["type"] == "json_schema"
        assert kwargs["response_format"]["json_schema"]["strict"] is True

    @pytest.mark.asyncio
    async def test_json_mode(self, sample_output_text):
        client = OpenAICompatibleClient(_provider(mode="json"))

        with patch.object(client, "client") as mock_client:
            mock_client.chat.completions.create = AsyncMock(
                return_value=_chat_response(content=sample_output_text)
            )
            await _call(client)

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "tools" not in kwargs

    @pytest.mark.asyncio
    async def test_tool_mode_returns_arguments(self, sample_output_text):
        client = OpenAICompatibleClient(_provider(mode="tool"))

        with patch.object(client, "client") as mock_client:
            mock_client.chat.completions.create = AsyncMock(
                return_value=_chat_response(tool_arguments=sample_output_text)
            )
            result = await _call(client)

        assert result == sample_output_text
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["tools"][0]["function"]["name"] == TOOL_NAME
        assert kwargs["tool_choice"]["function"]["name"] == TOOL_NAME
        assert "response_format" not in kwargs

    @pytest.mark.asyncio
    async def test_tool_mode_without_tool_call(self):
        client = OpenAICompatibleClient(_provider(mode="tool"))

        with patch.object(client, "client") as mock_client:
            mock_client.chat.completions.create = AsyncMock(
                return_value=_chat_response(content="plain text")
            )
            with pytest.raises(AIGenerationError):
                await _call(client)

    @pytest.mark.asyncio
    async def test_empty_content(self):
        client = OpenAICompatibleClient(_provider())

        with patch.object(client, "client") as mock_client:
            mock_client.chat.completions.create = AsyncMock(return_value=_chat_response(content=""))
            with pytest.raises(AIGenerationError) as exc_info:
                await _call(client)

        assert exc_info.value.provider == "P"
        assert exc_info.value.model == "m1"

    @pytest.mark.asyncio
    async def test_api_error_becomes_generation_error(self):
        client = OpenAICompatibleClient(_provider())
        error = APIConnectionError(request=httpx.Request("POST", "https://api.example.com/v1"))

        with patch.object(client, "client") as mock_client:
            mock_client.chat.completions.create = AsyncMock(side_effect=error)
            with pytest.raises(AIGenerationError) as exc_info:
                await _call(client)

        assert exc_info.value.provider == "P"
        assert exc_info.value.__cause__ is error


class TestGoogleCompatibleClient:
    """Gemini 适配器测试"""

    @pytest.mark.asyncio
    async def test_generate_request_and_response(self, sample_output_text):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["headers"] = request.headers
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"candidates": [{"content": {"parts": [{"text": sample_output_text}]}}]}
            )

        client = GoogleCompatibleClient(_provider("google"), transport=httpx.MockTransport(handler))

        result = await _call(client)

        assert result == sample_output_text
        assert captured["url"] == "https://gemini.example.com/v1beta/models/m1:generateContent"
        assert captured["headers"]["x-goog-api-key"] == "sk-test"
        body = captured["body"]
        assert body["systemInstruction"]["parts"][0]["text"] == "system"
        assert body["contents"][0]["parts"][0]["text"] == "user"
        config = body["generationConfig"]
        assert config["temperature"] == 0.5
        assert config["responseMimeType"] == "application/json"
        assert "additionalProperties" not in config["responseSchema"]
        assert "additionalProperties" not in config["responseSchema"]["properties"]["appearance"]

    def test_json_mode_omits_schema(self):
        client = GoogleCompatibleClient(_provider("google", mode="json"))

        payload = client._build_payload("s", "u", 0.8)

        assert "responseSchema" not in payload["generationConfig"]
        assert payload["generationConfig"]["responseMimeType"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": {"message": "quota exceeded"}})

        client = GoogleCompatibleClient(_provider("google"), transport=httpx.MockTransport(handler))

        with pytest.raises(AIGenerationError) as exc_info:
            await _call(client)

        assert "429" in exc_info.value.message
        assert "quota exceeded" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_candidates(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

        client = GoogleCompatibleClient(_provider("google"), transport=httpx.MockTransport(handler))

        with pytest.raises(AIGenerationError):
            await _call(client)

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        client = GoogleCompatibleClient(_provider("google"), transport=httpx.MockTransport(handler))

        with pytest.raises(AIGenerationError) as exc_info:
            await _call(client)

        assert exc_info.value.provider == "P"
        assert exc_info.value.details == "<html>gateway</html>"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            [],
            ["candidates"],
            {"candidates": "oops"},
            {"candidates": [None]},
            {"candidates": [{"content": None}]},
            {"candidates": [{"content": {"parts": None}}]},
            {"candidates": [{"content": {"parts": [None, {"text": None}]}}]},
        ],
    )
    async def test_unexpected_body_shape(self, body):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        client = GoogleCompatibleClient(_provider("google"), transport=httpx.MockTransport(handler))

        with pytest.raises(AIGenerationError):
            await _call(client)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body,expected",
        [
            ({"error": "backend overloaded"}, "backend overloaded"),
            (["error"], "Service Unavailable"),
            ({"error": {"code": 503}}, "Service Unavailable"),
        ],
    )
    async def test_error_status_with_unusual_body(self, body, expected):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json=body)

        client = GoogleCompatibleClient(_provider("google"), transport=httpx.MockTransport(handler))

        with pytest.raises(AIGenerationError) as exc_info:
            await _call(client)

        assert expected in exc_info.value.message

    @pytest.mark.asyncio
    async def test_error_status_with_html_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>bad gateway</html>")

        client = GoogleCompatibleClient(_provider("google"), transport=httpx.MockTransport(handler))

        with pytest.raises(AIGenerationError) as exc_info:
            await _call(client)

        assert "Bad Gateway" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = GoogleCompatibleClient(_provider("google"), transport=httpx.MockTransport(handler))

        with pytest.raises(AIGenerationError) as exc_info:
            await _call(client)

        assert "ConnectError" in exc_info.value.message


class TestGetAIClient:
    """客户端工厂测试"""

    def test_openai_type(self):
        assert isinstance(get_ai_client(_provider("openai")), OpenAICompatibleClient)

    def test_google_type(self):
        client = get_ai_client(_provider("google"), timeout=5)

        assert isinstance(client, GoogleCompatibleClient)
        assert client.timeout == 5
        assert client.base_url == "https://gemini.example.com"
