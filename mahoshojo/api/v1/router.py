"""
API v1 Router
汇总所有 API 路由
"""

from fastapi import APIRouter

from mahoshojo.api.v1.magical_girl import router as magical_girl_router
from mahoshojo.api.v1.providers import router as providers_router

api_router = APIRouter()

api_router.include_router(magical_girl_router)
api_router.include_router(providers_router)
