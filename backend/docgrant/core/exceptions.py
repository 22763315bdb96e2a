# backend/docgrant/core/exceptions.py
"""
自定义异常处理器
"""
import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from docgrant.core.config import settings
from .responses import (
    APIResponse,
    ErrorDetail,
    GrantExpired,
    GrantVerificationError,
    InvalidInput,
    ResponseCode,
    SigningError,
    ValidationErrorResponse,
)

logger = logging.getLogger(__name__)


def _is_production(request: Request) -> bool:
    app_settings = getattr(request.app.state, "settings", settings)
    return app_settings.ENVIRONMENT == "production"


async def invalid_input_handler(request: Request, exc: InvalidInput):
    """请求参数错误处理器"""
    logger.warning(f"Invalid Input: {exc.field} - {exc.message}")
    return JSONResponse(
        status_code=422,
        content=ValidationErrorResponse(
            success=False,
            message=exc.message,
            code=ResponseCode.VALIDATION_ERROR,
            data=None,
            details=[ErrorDetail(field=exc.field, message=exc.message, code="invalid_input")]
        ).model_dump()
    )


async def signing_error_handler(request: Request, exc: SigningError):
    """
    签名失败处理器

    属于集成配置错误（密钥缺失或算法不匹配），需要运维处理，客户端重试无效。
    """
    logger.error(f"Signing Error: {exc.message}")
    message = "编辑器集成配置错误，请联系管理员" if _is_production(request) else exc.message
    return JSONResponse(
        status_code=500,
        content=APIResponse.error_response(
            message=message,
            code=ResponseCode.INTEGRATION_ERROR
        ).model_dump()
    )


async def grant_verification_handler(request: Request, exc: GrantVerificationError):
    """令牌校验失败处理器"""
    logger.warning(f"Grant Verification Error: {exc.message}")
    code = ResponseCode.TOKEN_EXPIRED if isinstance(exc, GrantExpired) else ResponseCode.UNAUTHORIZED
    return JSONResponse(
        status_code=401,
        content=APIResponse.error_response(
            message=exc.message,
            code=code
        ).model_dump()
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """FastAPI 请求验证异常处理器"""
    logger.warning(f"Request Validation Error: {exc.errors()}")

    details = []
    for error in exc.errors():
        # 构建字段路径
        field_path = " -> ".join(str(loc) for loc in error.get("loc", []))
        details.append(ErrorDetail(
            field=field_path,
            message=error.get("msg", "验证失败"),
            code=error.get("type")
        ))

    return JSONResponse(
        status_code=422,
        content=ValidationErrorResponse(
            success=False,
            message="请求数据验证失败",
            code=ResponseCode.VALIDATION_ERROR,
            data=None,
            details=details
        ).model_dump()
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """HTTP 异常处理器"""
    logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")

    code_mapping = {
        401: ResponseCode.UNAUTHORIZED,
        403: ResponseCode.FORBIDDEN,
        404: ResponseCode.NOT_FOUND,
        500: ResponseCode.INTERNAL_SERVER_ERROR,
        502: ResponseCode.SERVICE_UNAVAILABLE,
        503: ResponseCode.SERVICE_UNAVAILABLE,
    }
    business_code = code_mapping.get(exc.status_code, ResponseCode.BUSINESS_ERROR)

    if isinstance(exc.detail, dict):
        message = exc.detail.get("message") or exc.detail.get("detail") or str(exc.detail)
    else:
        message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content=APIResponse.error_response(
            message=message,
            code=business_code
        ).model_dump()
    )


async def general_exception_handler(request: Request, exc: Exception):
    """通用异常处理器"""
    logger.error(f"Unhandled Exception: {type(exc).__name__} - {str(exc)}", exc_info=True)

    # 生产环境下隐藏详细错误信息
    message = "服务器内部错误" if _is_production(request) else str(exc)

    return JSONResponse(
        status_code=500,
        content=APIResponse.error_response(
            message=message,
            code=ResponseCode.INTERNAL_SERVER_ERROR
        ).model_dump()
    )


def setup_exception_handlers(app):
    """设置异常处理器"""
    app.add_exception_handler(InvalidInput, invalid_input_handler)
    app.add_exception_handler(SigningError, signing_error_handler)
    app.add_exception_handler(GrantVerificationError, grant_verification_handler)

    # FastAPI 内置异常处理器
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers configured successfully")
