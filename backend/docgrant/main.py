# backend/docgrant/main.py
"""
文档编辑会话服务入口

为前端签发 ONLYOFFICE 编辑器配置与 JWT，并接收 Document Server 回调。
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from docgrant import __version__
from docgrant.api.v1.router import api_router
from docgrant.core.config import Settings, settings
from docgrant.core.exceptions import setup_exception_handlers
from docgrant.core.logger import setup_logging
from docgrant.core.security import GrantIssuer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    启动时根据配置创建签发器（密钥只在此处读取一次），关闭时释放
    """
    app_settings: Settings = app.state.settings
    app.state.grant_issuer = GrantIssuer.from_settings(app_settings)
    if app.state.grant_issuer.has_secret:
        logger.info(f"Grant issuer ready (algorithm={app_settings.ONLYOFFICE_JWT_ALGORITHM})")
    else:
        logger.error("ONLYOFFICE_JWT_SECRET is not configured; editor sessions will fail with INTEGRATION_ERROR")
    try:
        yield
    finally:
        app.state.grant_issuer = None
        logger.info("Grant issuer released")


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings
    setup_logging(app_settings.LOG_LEVEL)

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.grant_issuer = None

    if app_settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    setup_exception_handlers(app)
    app.include_router(api_router, prefix=app_settings.API_V1_STR)

    @app.get("/health")
    def health_check(request: Request):
        """
        健康检查端点
        """
        issuer = request.app.state.grant_issuer
        return {
            "success": True,
            "status": "healthy",
            "timestamp": time.time(),
            "version": __version__,
            "services": {
                "onlyoffice_url": app_settings.ONLYOFFICE_URL,
                "jwt_secret_configured": bool(issuer and issuer.has_secret),
                "jwt_algorithm": app_settings.ONLYOFFICE_JWT_ALGORITHM,
            }
        }

    @app.get("/health/onlyoffice")
    async def check_onlyoffice_health():
        """
        OnlyOffice 服务健康检查
        用于调试 OnlyOffice 连接问题
        """
        service_url = app_settings.ONLYOFFICE_URL
        try:
            async with httpx.AsyncClient(timeout=app_settings.ONLYOFFICE_HEALTH_TIMEOUT) as client:
                response = await client.get(
                    f"{service_url}/healthcheck",
                    headers={"User-Agent": "HealthCheck/1.0"}
                )
            healthy = response.status_code == 200 and response.text.strip().lower() == "true"
            return {
                "success": healthy,
                "status_code": response.status_code,
                "service_url": service_url,
                "message": "OnlyOffice 服务可访问" if healthy else f"OnlyOffice 返回状态码: {response.status_code}"
            }
        except httpx.HTTPError as e:
            logger.warning(f"[OnlyOffice Health] 连接失败: {e}")
            return {
                "success": False,
                "service_url": service_url,
                "error": str(e),
                "message": "无法连接到 OnlyOffice 服务"
            }

    return app


app = create_app()
