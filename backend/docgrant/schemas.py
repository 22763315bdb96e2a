# backend/docgrant/schemas.py
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from docgrant.models.grant import AccessGrant

# =======================
# Editor Session Schemas
# =======================
class EditorConfigRequest(BaseModel):
    """编辑器会话请求"""
    document_url: str = Field(..., description="Document Server 可访问的文档地址")
    # 访问级别在签发器中统一解析，便于返回一致的 InvalidInput 错误
    access_level: Union[str, int] = Field("view", description="view / comment / edit 或 0 / 1 / 2")
    validity_minutes: Optional[int] = Field(None, description="有效期（分钟），默认使用服务端配置")
    title: Optional[str] = None
    file_type: Optional[str] = None
    document_key: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None


class EditorConfigResponse(BaseModel):
    """返回给前端的编辑器配置，config.token 与 token 相同"""
    config: Dict[str, Any]
    token: str
    expires_at: datetime
    document_server_api_url: str


class VerifyTokenRequest(BaseModel):
    token: str


class GrantSummary(BaseModel):
    """解码后的授权信息"""
    document_url: str
    access_level: str
    document_key: str
    title: str
    file_type: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def from_grant(cls, grant: AccessGrant) -> "GrantSummary":
        return cls(
            document_url=grant.document_reference,
            access_level=grant.access_level.name,
            document_key=grant.document_key,
            title=grant.title,
            file_type=grant.file_type,
            issued_at=grant.issued_at,
            expires_at=grant.expires_at,
        )


# =======================
# Document Server Callback
# =======================
class CallbackRequest(BaseModel):
    key: str
    status: int
    url: Optional[str] = None
    users: List[str] = []
    actions: List[dict] = []
    token: Optional[str] = None
