# backend/docgrant/api/editor_router.py
"""
编辑器会话 API 路由

前端请求某个文档的编辑器配置，后端签发带有效期的令牌并嵌入配置，
Document Server 加载文档前用共享密钥校验该令牌。
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from docgrant.api.deps import get_issuer, get_settings, get_token_from_header
from docgrant.core.config import Settings
from docgrant.core.responses import GrantVerificationError
from docgrant.core.security import GrantIssuer
from docgrant.models.grant import AccessGrant
from docgrant.schemas import (
    CallbackRequest,
    EditorConfigRequest,
    EditorConfigResponse,
    GrantSummary,
    VerifyTokenRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/editor",
    tags=["Editor Session"]
)

# Document Server 回调状态码
CALLBACK_STATUS = {
    1: "editing",
    2: "ready for saving",
    3: "saving error",
    4: "closed without changes",
    6: "force saving",
    7: "force saving error",
}


def _minutes_to_seconds(validity_minutes: Optional[int]) -> Optional[int]:
    # 非正数交给签发器统一报 InvalidInput
    if validity_minutes is None:
        return None
    return validity_minutes * 60


def _editor_response(grant: AccessGrant, app_settings: Settings) -> EditorConfigResponse:
    config = dict(grant.config)
    config["token"] = grant.token
    return EditorConfigResponse(
        config=config,
        token=grant.token,
        expires_at=grant.expires_at,
        document_server_api_url=app_settings.document_server_api_url,
    )


@router.post("/config", response_model=EditorConfigResponse)
def create_editor_config(
    request_data: EditorConfigRequest,
    issuer: GrantIssuer = Depends(get_issuer),
    app_settings: Settings = Depends(get_settings)
):
    """
    签发编辑器会话

    返回 OnlyOffice 编辑器配置和 JWT token
    """
    grant = issuer.issue(
        request_data.document_url,
        request_data.access_level,
        _minutes_to_seconds(request_data.validity_minutes),
        title=request_data.title,
        file_type=request_data.file_type,
        document_key=request_data.document_key,
        user_id=request_data.user_id,
        user_name=request_data.user_name,
    )
    return _editor_response(grant, app_settings)


@router.get("/config", response_model=EditorConfigResponse)
def get_editor_config(
    document_url: str = Query(..., description="文档地址"),
    access_level: str = Query("view", description="view / comment / edit 或 0 / 1 / 2"),
    validity_minutes: Optional[int] = Query(None, description="有效期（分钟）"),
    issuer: GrantIssuer = Depends(get_issuer),
    app_settings: Settings = Depends(get_settings)
):
    grant = issuer.issue(document_url, access_level, _minutes_to_seconds(validity_minutes))
    return _editor_response(grant, app_settings)


@router.post("/grants/verify", response_model=GrantSummary)
def verify_editor_token(
    request_data: VerifyTokenRequest,
    issuer: GrantIssuer = Depends(get_issuer)
):
    """
    按 Document Server 的规则校验令牌

    用于排查“文档安全令牌格式不正确”一类集成配置问题。
    """
    grant = issuer.verify(request_data.token)
    return GrantSummary.from_grant(grant)


@router.post("/callback")
def onlyoffice_callback(
    callback_data: CallbackRequest,
    issuer: GrantIssuer = Depends(get_issuer),
    header_token: Optional[str] = Depends(get_token_from_header)
):
    """
    Document Server 保存/状态回调

    Document Server 要求响应体为 {"error": 0}，否则会提示保存失败。
    """
    status = callback_data.status
    users = callback_data.users
    if issuer.has_secret:
        token = callback_data.token or header_token
        if not token:
            logger.warning(f"[OnlyOffice Callback] key={callback_data.key} 缺少令牌")
            return JSONResponse(status_code=403, content={"error": 1, "message": "missing token"})
        try:
            claims = issuer.decode_signed(token)
        except GrantVerificationError as e:
            logger.warning(f"[OnlyOffice Callback] key={callback_data.key} 令牌无效: {e.message}")
            return JSONResponse(status_code=403, content={"error": 1, "message": e.message})
        # Authorization 头中的令牌把回调正文包在 payload 字段里
        body = claims.get("payload", claims)
        if not isinstance(body, dict) or body.get("key") != callback_data.key:
            logger.warning(f"[OnlyOffice Callback] key 不匹配: {callback_data.key}")
            return JSONResponse(status_code=403, content={"error": 1, "message": "key mismatch"})
        # 以签名内容为准
        status = body.get("status")
        users = body.get("users", [])

    status_text = CALLBACK_STATUS.get(status, "unknown") if isinstance(status, int) else "unknown"
    logger.info(
        f"[OnlyOffice Callback] key={callback_data.key} status={status} "
        f"({status_text}) users={users}"
    )
    return {"error": 0}
