"""
Mahoshojo Backend - FastAPI Application
魔法少女生成器后端
"""

import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from mahoshojo.__version__ import __version__
from mahoshojo.api.v1.router import api_router
from mahoshojo.core.ai_providers import LoadBalanceStrategy, get_provider_selector
from mahoshojo.core.config import settings
from mahoshojo.core.exception_handlers import register_exception_handlers
from mahoshojo.core.logging import log_request, setup_logging

# Configure logging (JSON in production, colored in development)
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("🚀 Starting Mahoshojo Backend...")
    logger.info(f"📝 Environment: {settings.ENVIRONMENT}")
    selector = get_provider_selector()
    if len(selector) == 0:
        logger.warning("⚠️ No AI providers configured, generation is unavailable")
    yield
    logger.info("👋 Shutting down Mahoshojo Backend...")


app = FastAPI(
    title="Mahoshojo API",
    description="魔法少女生成器 API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """为每个请求分配 request id 并记录耗时"""
    request_id = request.headers.get("x-request-id") or f"req_{uuid4().hex[:12]}"
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
    log_request(request.method, request.url.path, response.status_code, duration_ms, request_id)
    return response


register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check with AI provider status"""
    selector = get_provider_selector()
    provider_count = len(selector)
    return {
        "status": "healthy" if provider_count else "degraded",
        "version": __version__,
        "checks": {
            "ai_providers": provider_count,
            "strategy": LoadBalanceStrategy.resolve(settings.AI_LOAD_BALANCE_STRATEGY).value,
        },
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Welcome to Mahoshojo API", "docs": "/docs", "version": __version__}
