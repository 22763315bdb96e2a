# backend/docgrant/api/v1/router.py
"""
API v1 路由总管
所有业务 API 统一收归到 /api/v1 命名空间下
"""
from fastapi import APIRouter

from docgrant.api.editor_router import router as editor_router

api_router = APIRouter()

# 编辑器会话模块（令牌签发 / 校验 / Document Server 回调）
api_router.include_router(editor_router)
