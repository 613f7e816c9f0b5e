"""
Application Configuration
从环境变量加载配置
"""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Environment
    ENVIRONMENT: str = "development"

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Ensure critical settings are configured in production"""
        if self.ENVIRONMENT == "production" and "*" in self.CORS_ORIGINS:
            raise ValueError(
                "CORS_ORIGINS must not contain '*' in production! "
                "List the allowed front-end origins explicitly."
            )
        return self

    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"  # DEBUG, INFO, WARNING, ERROR

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    FRONTEND_URL: str = "http://localhost:3000"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",  # Next.js dev server
        "http://127.0.0.1:3000",
    ]

    # AI Providers
    # JSON array: [{"name", "apiKey", "baseUrl", "model", "type", "retryCount"?, ...}]
    AI_PROVIDERS_CONFIG: str | None = None
    # sequential | random | round_robin (unknown values fall back to random)
    AI_LOAD_BALANCE_STRATEGY: str = "random"
    AI_REQUEST_TIMEOUT: float = 60.0
    AI_RETRY_WAIT_SECONDS: float = 0.5

    # Magical girl generation
    GENERATION_TEMPERATURE: float = 0.8
    MAX_NAME_LENGTH: int = 20


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
