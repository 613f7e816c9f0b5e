"""
Services module
Export all services
"""

from mahoshojo.services.ai_clients import (
    GoogleCompatibleClient,
    OpenAICompatibleClient,
    get_ai_client,
)
from mahoshojo.services.magical_girl_service import (
    MagicalGirlService,
    get_magical_girl_service,
)

__all__ = [
    "GoogleCompatibleClient",
    "OpenAICompatibleClient",
    "get_ai_client",
    "MagicalGirlService",
    "get_magical_girl_service",
]
