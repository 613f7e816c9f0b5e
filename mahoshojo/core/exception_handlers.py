"""
Exception Handlers
全局异常处理器，将自定义异常转换为 HTTP 响应
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from mahoshojo.core.exceptions import (
    AIGenerationError,
    ConfigurationError,
    ExternalServiceError,
    MahoshojoError,
    NoProviderAvailableError,
    ValidationError,
)


def register_exception_handlers(app: FastAPI) -> None:
    """注册全局异常处理器"""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422,
            content={"detail": exc.message, "code": exc.code, "field": exc.field},
        )

    @app.exception_handler(NoProviderAvailableError)
    async def no_provider_handler(request: Request, exc: NoProviderAvailableError):
        logger.error(f"No AI provider available: {exc.message}")
        return JSONResponse(
            status_code=503,
            content={"detail": "generation service unavailable", "code": exc.code},
        )

    @app.exception_handler(AIGenerationError)
    async def ai_generation_error_handler(request: Request, exc: AIGenerationError):
        logger.error(f"AI Generation Error: {exc.message}", provider=exc.provider, model=exc.model)
        return JSONResponse(
            status_code=502,
            content={
                "detail": exc.message,
                "code": exc.code,
                "service": "ai",
                "provider": exc.provider,
            },
        )

    @app.exception_handler(ExternalServiceError)
    async def external_service_handler(request: Request, exc: ExternalServiceError):
        logger.error(f"External Service Error: {exc.message}", service=exc.service)
        return JSONResponse(
            status_code=502,
            content={"detail": exc.message, "code": exc.code, "service": exc.service},
        )

    @app.exception_handler(ConfigurationError)
    async def config_error_handler(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration Error: {exc.message}")
        return JSONResponse(
            status_code=500,
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(MahoshojoError)
    async def mahoshojo_error_handler(request: Request, exc: MahoshojoError):
        """兜底处理所有 MahoshojoError"""
        logger.error(f"Mahoshojo Error: {exc.message}")
        return JSONResponse(
            status_code=500,
            content={"detail": exc.message, "code": exc.code},
        )
