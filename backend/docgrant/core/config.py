# backend/docgrant/core/config.py
import json
from typing import Annotated, List, Optional, Union

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

SUPPORTED_JWT_ALGORITHMS = ("HS256", "HS384", "HS512")


class Settings(BaseSettings):
    """
    应用配置类，使用 Pydantic 的 BaseSettings 自动从环境变量 / .env 读取配置。

    配置在进程启动时加载一次，之后视为只读。签名密钥只能通过环境变量注入，
    代码中不提供任何默认密钥。
    """

    # --- 应用基本配置 ---
    ENVIRONMENT: str = "development"
    PROJECT_NAME: str = "docgrant"
    API_V1_STR: str = "/api/v1"
    SERVER_HOST: str = "http://localhost:8000"  # 后端对 Document Server 可见的地址，用于回调
    FRONTEND_URL: str = ""  # 编辑器“返回”按钮跳转地址，留空则不显示
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []
    LOG_LEVEL: str = "INFO"

    # --- ONLYOFFICE Document Server ---
    ONLYOFFICE_URL: str = "http://localhost:8082"
    ONLYOFFICE_JWT_SECRET: Optional[SecretStr] = None  # 必须与 Document Server 的 JWT_SECRET 一致
    ONLYOFFICE_JWT_ALGORITHM: str = "HS256"
    ONLYOFFICE_EDITOR_LANG: str = "en"
    ONLYOFFICE_HEALTH_TIMEOUT: float = 10.0

    # --- 授权令牌有效期 ---
    GRANT_DEFAULT_TTL_MINUTES: int = 60
    GRANT_MAX_TTL_MINUTES: int = 60 * 24
    GRANT_VERIFY_LEEWAY_SECONDS: int = 0

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    @field_validator("ONLYOFFICE_JWT_SECRET", mode="before")
    @classmethod
    def blank_secret_is_missing(cls, v):
        """空字符串等同于未配置"""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("ONLYOFFICE_JWT_ALGORITHM")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in SUPPORTED_JWT_ALGORITHMS:
            raise ValueError(f"不支持的签名算法: {v}，可选值: {', '.join(SUPPORTED_JWT_ALGORITHMS)}")
        return v

    @field_validator("ONLYOFFICE_URL", "SERVER_HOST", "FRONTEND_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("GRANT_DEFAULT_TTL_MINUTES", "GRANT_MAX_TTL_MINUTES")
    @classmethod
    def positive_minutes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("有效期必须为正数（分钟）")
        return v

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.GRANT_DEFAULT_TTL_MINUTES > self.GRANT_MAX_TTL_MINUTES:
            raise ValueError("GRANT_DEFAULT_TTL_MINUTES 不能大于 GRANT_MAX_TTL_MINUTES")
        # 只在非生产环境警告，生产环境缺少密钥会在首次签发时报 SigningError
        if self.ENVIRONMENT != "production" and not self.jwt_secret_configured:
            self._warn_missing_secret()

    @property
    def jwt_secret_configured(self) -> bool:
        return self.ONLYOFFICE_JWT_SECRET is not None

    @property
    def document_server_api_url(self) -> str:
        """前端加载 DocsAPI 所用脚本地址"""
        return f"{self.ONLYOFFICE_URL}/web-apps/apps/api/documents/api.js"

    def _warn_missing_secret(self):
        import warnings
        warnings.warn(
            "ONLYOFFICE_JWT_SECRET is not set. "
            "Editor sessions cannot be signed until it is configured.",
            UserWarning,
            stacklevel=2
        )


# 创建配置实例
settings = Settings()
