"""
API Dependencies
共用的依赖注入
"""

from mahoshojo.core.ai_providers import ProviderSelector, get_provider_selector


def get_selector() -> ProviderSelector:
    """Get the process-wide provider selector"""
    return get_provider_selector()
