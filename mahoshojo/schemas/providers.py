"""
AI Provider Schemas
AI 提供商展示接口
"""

from pydantic import BaseModel


class ProviderInfo(BaseModel):
    """单个提供商 (不含 API Key)"""

    name: str
    type: str
    base_url: str
    model: str | list[str]
    mode: str | None = None
    retry_count: int
    skip_probability: float
    weight: float


class ProvidersResponse(BaseModel):
    """提供商列表响应"""

    strategy: str
    default_model: str | list[str]
    providers: list[ProviderInfo]
