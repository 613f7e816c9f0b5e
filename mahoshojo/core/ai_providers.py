"""
AI Provider Registry
AI 提供商配置解析与负载均衡选择

提供商列表在进程启动 (或首次访问) 时从 AI_PROVIDERS_CONFIG 解析一次，之后不可变。
唯一的可变状态是 round_robin 游标，由 ProviderSelector 实例持有。
"""

from __future__ import annotations

import json
import random
import threading
import time
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from mahoshojo.core.config import settings
from mahoshojo.core.exceptions import InvalidConfigError

DEFAULT_MODEL = "gemini-2.5-flash"

REQUIRED_FIELDS = ("apiKey", "baseUrl", "model", "type")


class LoadBalanceStrategy(str, Enum):
    """负载均衡策略"""

    RANDOM = "random"
    SEQUENTIAL = "sequential"  # 按当前秒数取模, 约每秒变化一次
    ROUND_ROBIN = "round_robin"

    @classmethod
    def resolve(cls, value: str | LoadBalanceStrategy | None) -> LoadBalanceStrategy:
        """未知策略回退为 random"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.RANDOM


class ProviderConfig(BaseModel):
    """单个 AI 提供商配置"""

    # strict: values keep the types they were configured with
    # extra="allow": unknown keys are carried through untouched
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        strict=True,
        extra="allow",
    )

    name: str = ""
    api_key: str = Field(min_length=1)
    base_url: str = Field(min_length=1)
    # 单个模型或按顺序回退的模型列表
    model: str | list[str]
    type: Literal["openai", "google"]
    retry_count: int = Field(default=1, ge=0)
    skip_probability: float = Field(default=0, ge=0, le=1)
    mode: Literal["json", "auto", "tool"] | None = None
    weight: float = Field(default=1, gt=0)

    @property
    def models(self) -> list[str]:
        """模型回退链"""
        if isinstance(self.model, str):
            return [self.model]
        return list(self.model)

    def public_dict(self) -> dict[str, Any]:
        """不含 API Key 的展示字段"""
        return self.model_dump(exclude={"api_key"})


def _coerce_entry(index: int, entry: Any) -> ProviderConfig:
    if not isinstance(entry, dict):
        raise InvalidConfigError(f"AI_PROVIDERS_CONFIG[{index}]", entry, "entry must be an object")

    missing = [key for key in REQUIRED_FIELDS if not entry.get(key)]
    if missing:
        raise InvalidConfigError(
            f"AI_PROVIDERS_CONFIG[{index}]",
            entry.get("name", "<unnamed>"),
            f"missing required fields: {', '.join(missing)}",
        )

    try:
        return ProviderConfig.model_validate(entry)
    except PydanticValidationError as e:
        raise InvalidConfigError(
            f"AI_PROVIDERS_CONFIG[{index}]",
            entry.get("name", "<unnamed>"),
            f"{e.error_count()} invalid field(s)",
        ) from e


def parse_providers(raw_config: str | None) -> list[ProviderConfig]:
    """
    解析 JSON 数组形式的提供商配置

    - 缺少 apiKey/baseUrl/model/type 的条目被丢弃
    - 未提供的字段填充默认值 (retryCount=1, skipProbability=0, weight=1)
    - 保持配置顺序
    - JSON 无效时记录警告并返回空列表, 不抛出异常
    """
    if not raw_config or not raw_config.strip():
        return []

    try:
        entries = json.loads(raw_config)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse AI_PROVIDERS_CONFIG: {e}")
        return []

    if not isinstance(entries, list):
        logger.warning(
            f"AI_PROVIDERS_CONFIG must be a JSON array, got {type(entries).__name__}"
        )
        return []

    providers: list[ProviderConfig] = []
    for index, entry in enumerate(entries):
        try:
            providers.append(_coerce_entry(index, entry))
        except InvalidConfigError as e:
            logger.warning(f"Dropping AI provider: {e.message}")

    return providers


class ProviderSelector:
    """按策略从已配置的提供商中选择一个"""

    def __init__(
        self,
        providers: Sequence[ProviderConfig],
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._providers = tuple(providers)
        self._rng = rng or random.Random()
        self._clock = clock
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, raw_config: str | None, **kwargs) -> ProviderSelector:
        return cls(parse_providers(raw_config), **kwargs)

    def __len__(self) -> int:
        return len(self._providers)

    @property
    def cursor(self) -> int:
        return self._cursor

    def list_providers(self) -> tuple[ProviderConfig, ...]:
        """按配置顺序返回提供商列表"""
        return self._providers

    def select_provider(
        self, strategy: str | LoadBalanceStrategy = LoadBalanceStrategy.RANDOM
    ) -> ProviderConfig | None:
        """
        选择一个提供商, 列表为空时返回 None

        weight 与 skip_probability 不参与选择, 由调用方处理。
        """
        count = len(self._providers)
        if count == 0:
            return None

        resolved = LoadBalanceStrategy.resolve(strategy)
        if resolved is LoadBalanceStrategy.SEQUENTIAL:
            index = int(self._clock()) % count
        elif resolved is LoadBalanceStrategy.ROUND_ROBIN:
            index = self._next_cursor(count)
        else:
            index = self._rng.randrange(count)

        return self._providers[index]

    def _next_cursor(self, count: int) -> int:
        # read-and-advance must be atomic across threads
        with self._lock:
            index = self._cursor % count
            self._cursor = (index + 1) % count
            return index


_selector: ProviderSelector | None = None
_selector_lock = threading.Lock()


def get_provider_selector() -> ProviderSelector:
    """获取进程级 ProviderSelector (首次访问时解析并缓存)"""
    global _selector
    if _selector is None:
        with _selector_lock:
            if _selector is None:
                selector = ProviderSelector.from_config(settings.AI_PROVIDERS_CONFIG)
                logger.info(
                    f"Loaded {len(selector)} AI provider(s)",
                    providers=[p.name for p in selector.list_providers()],
                    strategy=settings.AI_LOAD_BALANCE_STRATEGY,
                )
                _selector = selector
    return _selector


def reset_provider_selector() -> None:
    """丢弃缓存的 selector, 下次访问时重新解析配置"""
    global _selector
    with _selector_lock:
        _selector = None


def get_default_model(selector: ProviderSelector | None = None) -> str | list[str]:
    """第一个提供商的模型, 未配置时返回默认模型"""
    if selector is None:
        selector = get_provider_selector()
    providers = selector.list_providers()
    if providers:
        return providers[0].model
    return DEFAULT_MODEL
