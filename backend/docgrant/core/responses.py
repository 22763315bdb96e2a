# backend/docgrant/core/responses.py
"""
统一的API响应格式与业务异常
"""
import time
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar('T')


class ResponseCode(str, Enum):
    """API响应状态码枚举"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INTEGRATION_ERROR = "INTEGRATION_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    BUSINESS_ERROR = "BUSINESS_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class APIResponse(BaseModel, Generic[T]):
    """
    统一的API响应格式
    """
    success: bool = Field(..., description="请求是否成功")
    message: str = Field(..., description="响应消息")
    code: ResponseCode = Field(..., description="业务状态码")
    data: Optional[T] = Field(None, description="响应数据")
    timestamp: Optional[float] = Field(None, description="响应时间戳")

    @classmethod
    def error_response(
        cls,
        message: str,
        code: ResponseCode = ResponseCode.INTERNAL_SERVER_ERROR,
        data: Optional[T] = None
    ) -> "APIResponse[T]":
        """创建错误响应"""
        return cls(
            success=False,
            message=message,
            code=code,
            data=data,
            timestamp=time.time()
        )


class ErrorDetail(BaseModel):
    """错误详情"""
    field: Optional[str] = Field(None, description="错误字段")
    message: str = Field(..., description="错误消息")
    code: Optional[str] = Field(None, description="错误代码")


class ValidationErrorResponse(APIResponse[None]):
    """验证错误响应"""
    details: list[ErrorDetail] = Field(default_factory=list, description="错误详情列表")


class GrantError(Exception):
    """授权令牌相关异常基类"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInput(GrantError):
    """请求参数缺失或格式错误，返回给客户端修正"""
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class SigningError(GrantError):
    """
    无法生成签名（通常是共享密钥未配置或算法配置错误）

    属于服务端配置问题，不自动重试。
    """


class GrantVerificationError(GrantError):
    """令牌签名无效或结构不符合编辑器配置格式"""


class GrantExpired(GrantVerificationError):
    """令牌已过期"""
