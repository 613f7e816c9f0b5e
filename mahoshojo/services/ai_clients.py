"""
AI Clients
按提供商类型 (openai / google) 调用生成接口, 返回模型输出的原始文本
"""

from __future__ import annotations

import copy
from typing import Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError

from mahoshojo.core.ai_providers import ProviderConfig
from mahoshojo.core.exceptions import AIGenerationError
from mahoshojo.core.logging import get_logger
from mahoshojo.schemas.magical_girl import OUTPUT_JSON_SCHEMA

logger = get_logger(__name__)

TOOL_NAME = "create_magical_girl"


class AIClient(Protocol):
    provider: ProviderConfig

    async def generate(
        self, model: str, system_prompt: str, user_prompt: str, temperature: float
    ) -> str:
        """Return the raw text produced by ``model``."""
        ...


class OpenAICompatibleClient:
    """OpenAI 兼容接口 (OpenAI / SiliconFlow / DeepSeek / OneAPI ...)"""

    def __init__(self, provider: ProviderConfig, timeout: float = 60.0):
        self.provider = provider
        # 重试由调用方按 retry_count 控制
        self.client = AsyncOpenAI(
            api_key=provider.api_key,
            base_url=provider.base_url,
            timeout=timeout,
            max_retries=0,
        )

    def _structured_output_kwargs(self) -> dict:
        mode = self.provider.mode
        if mode == "json":
            return {"response_format": {"type": "json_object"}}
        if mode == "tool":
            return {
                "tools": [
                    {
                        "type": "function",
                        "function": {
                            "name": TOOL_NAME,
                            "description": "Create a magical girl character profile",
                            "parameters": OUTPUT_JSON_SCHEMA,
                        },
                    }
                ],
                "tool_choice": {"type": "function", "function": {"name": TOOL_NAME}},
            }
        return {
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "magical_girl",
                    "schema": OUTPUT_JSON_SCHEMA,
                    "strict": True,
                },
            }
        }

    async def generate(
        self, model: str, system_prompt: str, user_prompt: str, temperature: float
    ) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                **self._structured_output_kwargs(),
            )
        except OpenAIError as e:
            raise AIGenerationError(str(e), provider=self.provider.name, model=model) from e

        if not response.choices:
            raise AIGenerationError(
                "response did not include choices", provider=self.provider.name, model=model
            )
        message = response.choices[0].message

        if self.provider.mode == "tool":
            tool_calls = message.tool_calls or []
            if not tool_calls:
                raise AIGenerationError(
                    "model did not call the generation tool",
                    provider=self.provider.name,
                    model=model,
                )
            return tool_calls[0].function.arguments

        content = message.content
        if not content:
            raise AIGenerationError(
                "model returned empty content", provider=self.provider.name, model=model
            )
        return content


def _to_google_schema(schema: dict) -> dict:
    """Gemini responseSchema 不支持 additionalProperties"""
    result = copy.deepcopy(schema)
    result.pop("additionalProperties", None)
    for key, value in list(result.get("properties", {}).items()):
        if isinstance(value, dict):
            result["properties"][key] = _to_google_schema(value)
    return result


class GoogleCompatibleClient:
    """Google Gemini generateContent 接口"""

    def __init__(
        self,
        provider: ProviderConfig,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.provider = provider
        self.timeout = timeout
        self.base_url = provider.base_url.rstrip("/")
        self._transport = transport

    def _build_payload(self, system_prompt: str, user_prompt: str, temperature: float) -> dict:
        generation_config: dict = {
            "temperature": temperature,
            "responseMimeType": "application/json",
        }
        if self.provider.mode != "json":
            generation_config["responseSchema"] = _to_google_schema(OUTPUT_JSON_SCHEMA)

        return {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": generation_config,
        }

    async def generate(
        self, model: str, system_prompt: str, user_prompt: str, temperature: float
    ) -> str:
        url = f"{self.base_url}/v1beta/models/{model}:generateContent"
        headers = {
            "x-goog-api-key": self.provider.api_key,
            "Content-Type": "application/json",
        }
        payload = self._build_payload(system_prompt, user_prompt, temperature)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise AIGenerationError(
                f"request failed: {type(e).__name__}", provider=self.provider.name, model=model
            ) from e

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error(f"Gemini Error: {response.status_code} - {message}")
            raise AIGenerationError(
                f"HTTP {response.status_code}: {message}",
                provider=self.provider.name,
                model=model,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AIGenerationError(
                "response body is not JSON",
                provider=self.provider.name,
                model=model,
                details=response.text[:500],
            ) from e

        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates or not isinstance(candidates, list):
            raise AIGenerationError(
                "response did not include candidates", provider=self.provider.name, model=model
            )

        text = self._candidate_text(candidates[0])
        if not text:
            raise AIGenerationError(
                "model returned empty content", provider=self.provider.name, model=model
            )
        return text

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.reason_phrase
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        return response.reason_phrase

    @staticmethod
    def _candidate_text(candidate) -> str:
        # content / parts may be missing or null when the reply was blocked
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""
        texts = [part.get("text") for part in parts if isinstance(part, dict)]
        return "".join(text for text in texts if isinstance(text, str))


def get_ai_client(provider: ProviderConfig, timeout: float = 60.0) -> AIClient:
    """按提供商类型创建客户端"""
    if provider.type == "google":
        return GoogleCompatibleClient(provider, timeout=timeout)
    return OpenAICompatibleClient(provider, timeout=timeout)
