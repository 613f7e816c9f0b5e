"""
Magical Girl Service
根据真实姓名生成魔法少女角色

选择提供商 -> 按候选顺序故障转移 -> 每个模型按 retry_count 重试 -> 归一化输出
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from mahoshojo.core.ai_providers import ProviderConfig, ProviderSelector, get_provider_selector
from mahoshojo.core.config import settings
from mahoshojo.core.exceptions import AIGenerationError, NoProviderAvailableError, ValidationError
from mahoshojo.core.logging import log_external_call
from mahoshojo.schemas.magical_girl import (
    GRADIENT_COLORS,
    AIMagicalGirlOutput,
    GenerationResult,
)
from mahoshojo.services.ai_clients import AIClient, get_ai_client
from mahoshojo.utils.json_extract import parse_json_object

SYSTEM_PROMPT = """你是一个专业的魔法少女角色设计师。请根据用户输入的真实姓名，设计一个独特的魔法少女角色。

设计要求：
1. 魔法少女名字应该以花名为主题，要与用户的真实姓名有某种关联性或呼应
2. 外貌特征要协调统一，符合魔法少女的设定
3. 变身咒语要朗朗上口，充满魔法感
4. mainColor 必须从 red, orange, cyan, blue, purple, pink, yellow, green 中选择一个

请严格按照提供的 JSON schema 格式返回结果。"""

LEVELS: list[tuple[str, str]] = [
    ("种", "🌱"),
    ("芽", "🍃"),
    ("叶", "🌿"),
    ("蕾", "🌸"),
    ("花", "🌺"),
    ("宝石权杖", "💎"),
]
LEVEL_SEED_OFFSET = 6


def seed_random(value: str) -> int:
    """与前端一致的 32 位字符串哈希 (按 UTF-16 code unit 计算)"""
    hash_value = 0
    units = value.encode("utf-16-le")
    for i in range(0, len(units), 2):
        code = units[i] | (units[i + 1] << 8)
        hash_value = ((hash_value << 5) - hash_value + code) & 0xFFFFFFFF
    if hash_value >= 0x80000000:
        hash_value -= 0x100000000
    return abs(hash_value)


def pick_level(flower_name: str, real_name: str) -> tuple[str, str]:
    seed = seed_random(flower_name + real_name)
    return LEVELS[(seed + LEVEL_SEED_OFFSET) % len(LEVELS)]


def normalize_output(
    real_name: str,
    raw_text: str,
    provider: str | None = None,
    model: str | None = None,
) -> GenerationResult:
    """将任意提供商的输出归一化为 GenerationResult"""
    parsed = parse_json_object(raw_text)
    if parsed is None:
        raise AIGenerationError(
            "model output is not a JSON object",
            provider=provider,
            model=model,
            details=raw_text[:500],
        )

    try:
        output = AIMagicalGirlOutput.model_validate(parsed)
    except PydanticValidationError as e:
        raise AIGenerationError(
            f"model output does not match schema ({e.error_count()} error(s))",
            provider=provider,
            model=model,
            details=e.errors(include_url=False),
        ) from e

    first_page_color, second_page_color = GRADIENT_COLORS[output.main_color]
    level, level_emoji = pick_level(output.flower_name, real_name)

    return GenerationResult(
        real_name=real_name,
        flower_name=output.flower_name,
        flower_description=output.flower_description,
        appearance=output.appearance,
        spell=output.spell,
        main_color=output.main_color,
        first_page_color=first_page_color,
        second_page_color=second_page_color,
        level=level,
        level_emoji=level_emoji,
        provider=provider,
        model=model,
    )


class MagicalGirlService:
    """Magical girl generation over the configured AI providers"""

    def __init__(
        self,
        selector: ProviderSelector | None = None,
        *,
        strategy: str | None = None,
        client_factory: Callable[[ProviderConfig, float], AIClient] = get_ai_client,
        retry_wait: float | None = None,
        rng: random.Random | None = None,
    ):
        self.selector = selector if selector is not None else get_provider_selector()
        self.strategy = strategy or settings.AI_LOAD_BALANCE_STRATEGY
        self.client_factory = client_factory
        self.retry_wait = settings.AI_RETRY_WAIT_SECONDS if retry_wait is None else retry_wait
        self.temperature = settings.GENERATION_TEMPERATURE
        self.timeout = settings.AI_REQUEST_TIMEOUT
        self._rng = rng or random.Random()

    def validate_name(self, real_name: str) -> str:
        name = (real_name or "").strip()
        if not name:
            raise ValidationError("name", "must not be empty")
        if len(name) > settings.MAX_NAME_LENGTH:
            raise ValidationError(
                "name", f"must be at most {settings.MAX_NAME_LENGTH} characters"
            )
        return name

    def candidates(self) -> list[ProviderConfig]:
        """选中的提供商在前, 其余按配置顺序作为故障转移"""
        selected = self.selector.select_provider(self.strategy)
        if selected is None:
            raise NoProviderAvailableError()

        others = [p for p in self.selector.list_providers() if p is not selected]
        return [selected, *others]

    async def generate(self, real_name: str) -> GenerationResult:
        name = self.validate_name(real_name)
        candidates = self.candidates()

        last_error: AIGenerationError | None = None
        for index, provider in enumerate(candidates):
            is_last = index == len(candidates) - 1
            if not is_last and self._rng.random() < provider.skip_probability:
                logger.debug(f"Skipping AI provider {provider.name}")
                continue

            client = self.client_factory(provider, self.timeout)
            for model in provider.models:
                try:
                    return await self._generate_with_retry(client, provider, model, name)
                except AIGenerationError as e:
                    last_error = e
                    logger.warning(
                        f"AI provider {provider.name} failed with model {model}: {e.message}"
                    )

        raise last_error or AIGenerationError("all AI providers failed")

    async def _generate_with_retry(
        self, client: AIClient, provider: ProviderConfig, model: str, name: str
    ) -> GenerationResult:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(provider.retry_count + 1),
            wait=wait_fixed(self.retry_wait),
            retry=retry_if_exception_type(AIGenerationError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._generate_once(client, provider, model, name)
        raise AIGenerationError("retry loop exited without a result", provider=provider.name)

    async def _generate_once(
        self, client: AIClient, provider: ProviderConfig, model: str, name: str
    ) -> GenerationResult:
        start = time.perf_counter()
        try:
            raw_text = await client.generate(
                model=model,
                system_prompt=SYSTEM_PROMPT,
                user_prompt=f"真实姓名：{name}",
                temperature=self.temperature,
            )
            result = normalize_output(name, raw_text, provider=provider.name, model=model)
        except AIGenerationError as e:
            log_external_call(
                service="ai",
                provider=provider.name,
                model=model,
                duration_ms=(time.perf_counter() - start) * 1000,
                success=False,
                error=e.message,
            )
            raise

        log_external_call(
            service="ai",
            provider=provider.name,
            model=model,
            duration_ms=(time.perf_counter() - start) * 1000,
            success=True,
        )
        return result


async def get_magical_girl_service() -> MagicalGirlService:
    """Get magical girl service instance"""
    return MagicalGirlService()
