"""
Custom Exceptions
应用级自定义异常类型

使用具体异常类型替代字符串匹配，提高错误处理的可靠性和可维护性
"""

from __future__ import annotations

from typing import Any


class MahoshojoError(Exception):
    """应用基础异常"""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


# ========== 外部服务异常 ==========


class ExternalServiceError(MahoshojoError):
    """外部服务调用异常基类"""

    code = "SERVICE_UNAVAILABLE"

    def __init__(self, service: str, message: str, details: Any = None):
        super().__init__(f"{service} error: {message}", details)
        self.service = service


class AIGenerationError(ExternalServiceError):
    """AI 生成失败"""

    code = "AI_GENERATION_FAILED"

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
        details: Any = None,
    ):
        super().__init__("AI", message, details)
        self.provider = provider
        self.model = model


class NoProviderAvailableError(ExternalServiceError):
    """没有可用的 AI 提供商"""

    code = "AI_SERVICE_UNAVAILABLE"

    def __init__(self, message: str = "no AI provider configured"):
        super().__init__("AI", message)


# ========== 配置异常 ==========


class ConfigurationError(MahoshojoError):
    """配置错误"""

    pass


class InvalidConfigError(ConfigurationError):
    """无效配置值"""

    def __init__(self, config_key: str, value: Any, reason: str | None = None):
        message = f"Invalid configuration value for '{config_key}': {value}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.config_key = config_key
        self.value = value


# ========== 验证异常 ==========


class ValidationError(MahoshojoError):
    """验证错误"""

    code = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        super().__init__(f"Validation error for '{field}': {message}")
        self.field = field
