"""
Pytest Fixtures
共享测试夹具
"""

import json
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from mahoshojo.core import ai_providers
from mahoshojo.core.ai_providers import ProviderSelector, parse_providers
from mahoshojo.main import app

SAMPLE_PROVIDERS = [
    {"name": "A", "apiKey": "k1", "baseUrl": "u1", "model": "m1", "type": "openai"},
    {"name": "B", "apiKey": "k2", "baseUrl": "u2", "model": "m2", "type": "google"},
]

SAMPLE_OUTPUT = {
    "flowerName": "铃兰",
    "flowerDescription": "铃兰象征幸福归来",
    "appearance": {
        "height": "152cm",
        "weight": "42kg",
        "hairColor": "银白色",
        "hairStyle": "双马尾",
        "eyeColor": "浅绿色",
        "skinTone": "白皙",
        "wearing": "白绿相间的铃铛连衣裙",
        "specialFeature": "发间别着铃兰发饰",
    },
    "spell": "铃声回响，幸福归来！",
    "mainColor": "green",
}


@pytest.fixture
def sample_config() -> str:
    return json.dumps(SAMPLE_PROVIDERS)


@pytest.fixture
def sample_output_text() -> str:
    return json.dumps(SAMPLE_OUTPUT, ensure_ascii=False)


@pytest.fixture
def selector(sample_config) -> ProviderSelector:
    """Independent selector over the two sample providers"""
    return ProviderSelector(parse_providers(sample_config))


@pytest.fixture
def install_selector():
    """Replace the process-wide selector for the duration of a test"""

    def _install(selector: ProviderSelector) -> ProviderSelector:
        ai_providers._selector = selector
        return selector

    yield _install
    ai_providers.reset_provider_selector()


@pytest.fixture
async def client(install_selector, selector) -> AsyncGenerator[AsyncClient, None]:
    """Get test client"""
    install_selector(selector)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
