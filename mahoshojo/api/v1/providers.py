"""
AI Provider API
当前加载的 AI 提供商与负载均衡策略
"""

from fastapi import APIRouter, Depends

from mahoshojo.api.deps import get_selector
from mahoshojo.core.ai_providers import LoadBalanceStrategy, ProviderSelector, get_default_model
from mahoshojo.core.config import settings
from mahoshojo.schemas.providers import ProviderInfo, ProvidersResponse

router = APIRouter(prefix="/config", tags=["Config"])


@router.get("/ai-providers", response_model=ProvidersResponse)
async def get_ai_providers(selector: ProviderSelector = Depends(get_selector)) -> ProvidersResponse:
    """按配置顺序列出提供商 (不返回 API Key)"""
    providers = selector.list_providers()
    return ProvidersResponse(
        strategy=LoadBalanceStrategy.resolve(settings.AI_LOAD_BALANCE_STRATEGY).value,
        default_model=get_default_model(selector),
        providers=[ProviderInfo(**p.public_dict()) for p in providers],
    )
