"""
Magical Girl API Routes
魔法少女生成接口
"""

from fastapi import APIRouter, Depends

from mahoshojo.schemas.magical_girl import GenerateRequest, GenerationResult
from mahoshojo.services.magical_girl_service import MagicalGirlService, get_magical_girl_service

router = APIRouter(prefix="/magical-girl", tags=["Magical Girl"])


@router.post("/generate", response_model=GenerationResult)
async def generate_magical_girl(
    request: GenerateRequest,
    service: MagicalGirlService = Depends(get_magical_girl_service),
) -> GenerationResult:
    """
    根据真实姓名生成魔法少女

    - 无可用提供商: 503
    - 所有提供商均失败: 502
    - 姓名为空或过长: 422
    """
    return await service.generate(request.name)
