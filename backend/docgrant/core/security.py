# backend/docgrant/core/security.py
"""
文档编辑会话令牌签发与校验

签发的 JWT 的 claims 就是 ONLYOFFICE 编辑器配置本身（document / documentType /
editorConfig）再加上 iat、exp，Document Server 用同一个共享密钥校验签名与过期时间。
"""
import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

import jwt

from docgrant.core.config import Settings, settings
from docgrant.core.responses import (
    GrantExpired,
    GrantVerificationError,
    InvalidInput,
    SigningError,
)
from docgrant.models.grant import AccessGrant, AccessLevel
from docgrant.utils.onlyoffice_config import (
    derive_document_key,
    document_type_for,
    file_name_from_url,
    file_type_from_url,
    get_onlyoffice_config,
)

logger = logging.getLogger(__name__)

DOCUMENT_KEY_PATTERN = re.compile(r"^[0-9A-Za-z._=-]{1,128}$")

Validity = Union[timedelta, int, float]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class GrantIssuer:
    """
    会话令牌签发器

    只持有不可变配置（密钥、算法、有效期限制），签发与校验都不修改任何共享状态，
    可以被多个请求并发调用。
    """

    def __init__(
        self,
        secret: Optional[str],
        algorithm: str = "HS256",
        default_validity: timedelta = timedelta(minutes=60),
        max_validity: timedelta = timedelta(hours=24),
        leeway: timedelta = timedelta(0),
        lang: str = "en",
        callback_url: Optional[str] = None,
        goback_url: Optional[str] = None
    ):
        self._secret = secret if secret and secret.strip() else None
        self.algorithm = algorithm
        self.default_validity = default_validity
        self.max_validity = max_validity
        self.leeway = leeway
        self.lang = lang
        self.callback_url = callback_url
        self.goback_url = goback_url

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "GrantIssuer":
        secret = app_settings.ONLYOFFICE_JWT_SECRET
        return cls(
            secret=secret.get_secret_value() if secret is not None else None,
            algorithm=app_settings.ONLYOFFICE_JWT_ALGORITHM,
            default_validity=timedelta(minutes=app_settings.GRANT_DEFAULT_TTL_MINUTES),
            max_validity=timedelta(minutes=app_settings.GRANT_MAX_TTL_MINUTES),
            leeway=timedelta(seconds=app_settings.GRANT_VERIFY_LEEWAY_SECONDS),
            lang=app_settings.ONLYOFFICE_EDITOR_LANG,
            callback_url=f"{app_settings.SERVER_HOST}{app_settings.API_V1_STR}/editor/callback",
            goback_url=app_settings.FRONTEND_URL or None,
        )

    def __repr__(self) -> str:
        return (
            f"GrantIssuer(algorithm={self.algorithm!r}, "
            f"secret={'***' if self._secret else None}, "
            f"default_validity={self.default_validity!r})"
        )

    @property
    def has_secret(self) -> bool:
        return self._secret is not None

    def _require_secret(self) -> str:
        if self._secret is None:
            raise SigningError("ONLYOFFICE_JWT_SECRET 未配置，无法签发或校验编辑器令牌")
        return self._secret

    # ------------------------------------------------------------------
    # 参数校验
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_reference(document_reference: Any) -> str:
        if not isinstance(document_reference, str) or not document_reference.strip():
            raise InvalidInput("文档地址不能为空", field="document_reference")
        reference = document_reference.strip()
        parsed = urlparse(reference)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidInput(
                f"文档地址必须是 Document Server 可访问的 http(s) 绝对地址: {reference}",
                field="document_reference"
            )
        return reference

    @staticmethod
    def _validate_access_level(access_level: Any) -> AccessLevel:
        try:
            return AccessLevel.parse(access_level)
        except ValueError as e:
            raise InvalidInput(str(e), field="access_level") from e

    def _validate_validity(self, validity: Optional[Validity]) -> timedelta:
        if validity is None:
            return self.default_validity
        if isinstance(validity, bool) or not isinstance(validity, (timedelta, int, float)):
            raise InvalidInput(f"无效的有效期: {validity!r}", field="validity")
        if not isinstance(validity, timedelta):
            # 超出 timedelta 范围的数值在构造前拦截
            non_finite = isinstance(validity, float) and not math.isfinite(validity)
            if non_finite or validity > self.max_validity.total_seconds():
                raise InvalidInput(
                    f"有效期必须是不超过 {int(self.max_validity.total_seconds() // 60)} 分钟的有限数值",
                    field="validity"
                )
            try:
                validity = timedelta(seconds=validity)
            except (OverflowError, ValueError) as e:
                raise InvalidInput(f"无效的有效期: {validity!r}", field="validity") from e
        # JWT 时间戳精确到秒
        seconds = int(validity.total_seconds())
        if seconds < 1:
            raise InvalidInput("有效期必须为正数且不少于 1 秒", field="validity")
        if validity > self.max_validity:
            raise InvalidInput(
                f"有效期不能超过 {int(self.max_validity.total_seconds() // 60)} 分钟",
                field="validity"
            )
        return timedelta(seconds=seconds)

    @staticmethod
    def _validate_file_type(document_reference: str, file_type: Optional[str]) -> str:
        resolved = (file_type or file_type_from_url(document_reference)).lower().lstrip(".")
        try:
            document_type_for(resolved)
        except ValueError as e:
            raise InvalidInput(str(e), field="file_type") from e
        return resolved

    @staticmethod
    def _validate_document_key(document_reference: str, document_key: Optional[str]) -> str:
        if document_key is None:
            return derive_document_key(document_reference)
        if not DOCUMENT_KEY_PATTERN.match(document_key):
            raise InvalidInput(
                "document_key 只能包含字母、数字和 . _ = -，且长度不超过 128",
                field="document_key"
            )
        return document_key

    # ------------------------------------------------------------------
    # 签发
    # ------------------------------------------------------------------

    def issue(
        self,
        document_reference: str,
        access_level: Union[AccessLevel, int, str],
        validity: Optional[Validity] = None,
        *,
        title: Optional[str] = None,
        file_type: Optional[str] = None,
        document_key: Optional[str] = None,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
        callback_url: Optional[str] = None,
        issued_at: Optional[datetime] = None
    ) -> AccessGrant:
        """
        签发一个文档访问授权

        Args:
            document_reference: 文档地址
            access_level: 访问级别（枚举、整数代码或名称）
            validity: 有效期，timedelta 或秒数，默认使用配置的默认有效期
            title: 文档标题，默认取 URL 中的文件名
            file_type: 文件扩展名，默认取 URL 中的扩展名
            document_key: 文档唯一标识，默认由文档地址派生
            user_id: 编辑器中显示的用户ID
            user_name: 编辑器中显示的用户名
            callback_url: 保存回调地址，默认使用签发器配置
            issued_at: 签发时间，默认当前时间

        Returns:
            包含签名令牌与编辑器配置的 AccessGrant

        Raises:
            InvalidInput: 参数缺失或不合法
            SigningError: 密钥未配置或签名失败
        """
        reference = self._validate_reference(document_reference)
        level = self._validate_access_level(access_level)
        duration = self._validate_validity(validity)
        resolved_type = self._validate_file_type(reference, file_type)
        key = self._validate_document_key(reference, document_key)
        secret = self._require_secret()

        now = _as_utc(issued_at or _utcnow()).replace(microsecond=0)
        expires_at = now + duration
        doc_title = title or file_name_from_url(reference) or key

        config = get_onlyoffice_config(
            file_url=reference,
            document_key=key,
            title=doc_title,
            file_type=resolved_type,
            access_level=level,
            callback_url=callback_url or self.callback_url,
            user_id=user_id,
            user_name=user_name,
            lang=self.lang,
            goback_url=self.goback_url
        )
        claims = dict(config)
        claims["iat"] = int(now.timestamp())
        claims["exp"] = int(expires_at.timestamp())

        try:
            token = jwt.encode(claims, secret, algorithm=self.algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as e:
            logger.error(f"[Grant] 签名失败: {type(e).__name__}: {e}")
            raise SigningError(f"编辑器令牌签名失败: {e}") from e

        logger.info(
            f"[Grant] issued key={key} level={level.name} "
            f"validity={int(duration.total_seconds())}s exp={claims['exp']}"
        )
        return AccessGrant(
            document_reference=reference,
            access_level=level,
            issued_at=now,
            expires_at=expires_at,
            document_key=key,
            title=doc_title,
            file_type=resolved_type,
            signature=token.rsplit(".", 1)[-1],
            token=token,
            config=config,
        )

    def issue_grant(
        self,
        document_reference: str,
        access_level: Union[AccessLevel, int, str],
        validity: Optional[Validity] = None,
        **kwargs
    ) -> str:
        """签发并只返回令牌字符串"""
        return self.issue(document_reference, access_level, validity, **kwargs).token

    # ------------------------------------------------------------------
    # 校验
    # ------------------------------------------------------------------

    def decode_signed(self, token: str) -> Dict[str, Any]:
        """
        只校验签名与标准时间声明，返回原始 claims

        用于 Document Server 回调令牌，其 claims 不是编辑器配置。
        """
        secret = self._require_secret()
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                leeway=self.leeway,
            )
        except jwt.ExpiredSignatureError as e:
            raise GrantExpired("令牌已过期") from e
        except jwt.PyJWTError as e:
            raise GrantVerificationError(f"令牌无效: {e}") from e

    def verify(self, token: str, *, now: Optional[datetime] = None) -> AccessGrant:
        """
        校验编辑器令牌并还原 AccessGrant

        与 Document Server 的校验规则一致：签名必须有效、结构必须符合编辑器配置、
        当前时间不得晚于 exp。

        Raises:
            GrantVerificationError: 签名无效或结构不符
            GrantExpired: 已过期
            SigningError: 密钥未配置
        """
        secret = self._require_secret()
        if not isinstance(token, str) or not token.strip():
            raise GrantVerificationError("令牌不能为空")
        try:
            # 过期时间用调用方给出的 now 判断，这里只校验签名与必需字段
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp", "iat"]},
            )
        except jwt.PyJWTError as e:
            raise GrantVerificationError(f"令牌无效: {e}") from e

        document = claims.get("document")
        editor_config = claims.get("editorConfig")
        if not isinstance(document, dict) or not isinstance(editor_config, dict):
            raise GrantVerificationError("令牌缺少 document 或 editorConfig")
        url = document.get("url")
        permissions = document.get("permissions")
        mode = editor_config.get("mode")
        if not isinstance(url, str) or not url:
            raise GrantVerificationError("令牌缺少 document.url")
        if not isinstance(permissions, dict):
            raise GrantVerificationError("令牌缺少 document.permissions")
        if mode not in ("view", "edit"):
            raise GrantVerificationError(f"无效的 editorConfig.mode: {mode!r}")

        iat, exp = claims["iat"], claims["exp"]
        if not _is_int(iat) or not _is_int(exp) or exp <= iat:
            raise GrantVerificationError("令牌时间声明无效")

        current = _as_utc(now or _utcnow())
        if current.timestamp() >= exp + self.leeway.total_seconds():
            raise GrantExpired("令牌已过期")

        config = {k: v for k, v in claims.items() if k not in ("iat", "exp")}
        return AccessGrant(
            document_reference=url,
            access_level=AccessLevel.from_permissions(permissions, mode),
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
            document_key=str(document.get("key", "")),
            title=str(document.get("title", "")),
            file_type=str(document.get("fileType", "")),
            signature=token.rsplit(".", 1)[-1],
            token=token,
            config=config,
        )


_issuer_instance: Optional[GrantIssuer] = None


def get_grant_issuer() -> GrantIssuer:
    """
    获取进程级签发器（基于模块级 settings）

    供脚本、后台任务等非 HTTP 调用方使用；HTTP 路由通过 api.deps.get_issuer
    使用 lifespan 创建并挂在 app.state 上的签发器。
    """
    global _issuer_instance
    if _issuer_instance is None:
        _issuer_instance = GrantIssuer.from_settings(settings)
    return _issuer_instance


def issue_grant(
    document_reference: str,
    access_level: Union[AccessLevel, int, str],
    validity: Optional[Validity] = None,
    **kwargs
) -> str:
    return get_grant_issuer().issue_grant(document_reference, access_level, validity, **kwargs)


def verify_grant(token: str, *, now: Optional[datetime] = None) -> AccessGrant:
    return get_grant_issuer().verify(token, now=now)
