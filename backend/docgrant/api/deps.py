from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from docgrant.core.config import Settings
from docgrant.core.responses import SigningError
from docgrant.core.security import GrantIssuer

# Document Server 回调时把令牌放在 Authorization: Bearer 头里
security_bearer = HTTPBearer(auto_error=False)


def get_token_from_header(credentials: HTTPAuthorizationCredentials = Depends(security_bearer)) -> Optional[str]:
    """从 Authorization 头提取 token"""
    if credentials:
        return credentials.credentials
    return None


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_issuer(request: Request) -> GrantIssuer:
    """
    获取应用启动时创建的签发器
    """
    issuer = getattr(request.app.state, "grant_issuer", None)
    if issuer is None:
        # lifespan 尚未运行或已关闭
        raise SigningError("签发器未初始化")
    return issuer
