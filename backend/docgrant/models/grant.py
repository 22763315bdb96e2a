# backend/docgrant/models/grant.py
"""
文档编辑授权模型

AccessGrant 是一次性签发、不可变、不落库的临时凭证：
文档、权限或有效期任一发生变化都必须重新签发。
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any, Dict, Optional, Union


class AccessLevel(IntEnum):
    """访问级别，数值越大能力越强"""
    VIEW_ONLY = 0
    COMMENT = 1
    EDIT = 2

    @classmethod
    def parse(cls, value: Union["AccessLevel", int, str]) -> "AccessLevel":
        """
        将请求中的访问级别转换为枚举值

        支持枚举本身、整数代码以及名称（不区分大小写）。

        Raises:
            ValueError: 无法识别的访问级别
        """
        if isinstance(value, cls):
            return value
        # bool 是 int 的子类，True/False 不是合法的级别代码
        if isinstance(value, bool):
            raise ValueError(f"无法识别的访问级别: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"无法识别的访问级别: {value!r}") from None
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_")
            if key.isdigit():
                return cls.parse(int(key))
            level = _ACCESS_LEVEL_ALIASES.get(key)
            if level is not None:
                return level
        raise ValueError(f"无法识别的访问级别: {value!r}")

    @property
    def editor_mode(self) -> str:
        # 仅评论的会话在 ONLYOFFICE 中也以 edit 模式打开，由 permissions 限制编辑
        return "view" if self is AccessLevel.VIEW_ONLY else "edit"

    def permissions(self) -> Dict[str, bool]:
        """
        生成 document.permissions

        Document Server 对未给出的能力字段默认为 true，因此所有能力字段都显式写出。
        """
        can_edit = self >= AccessLevel.EDIT
        return {
            "comment": self >= AccessLevel.COMMENT,
            "copy": True,
            "download": True,
            "edit": can_edit,
            "fillForms": can_edit,
            "modifyContentControl": can_edit,
            "modifyFilter": can_edit,
            "print": True,
            "review": can_edit,
        }

    @classmethod
    def from_permissions(cls, permissions: Dict[str, Any], mode: str) -> "AccessLevel":
        """从解码后的 permissions 与 editorConfig.mode 还原访问级别"""
        if mode == "view":
            return cls.VIEW_ONLY
        if permissions.get("edit") is True:
            return cls.EDIT
        if permissions.get("comment") is True:
            return cls.COMMENT
        return cls.VIEW_ONLY


_ACCESS_LEVEL_ALIASES = {
    "view": AccessLevel.VIEW_ONLY,
    "view_only": AccessLevel.VIEW_ONLY,
    "viewonly": AccessLevel.VIEW_ONLY,
    "read": AccessLevel.VIEW_ONLY,
    "comment": AccessLevel.COMMENT,
    "edit": AccessLevel.EDIT,
    "write": AccessLevel.EDIT,
}


@dataclass(frozen=True)
class AccessGrant:
    """已签名的文档访问授权"""
    document_reference: str
    access_level: AccessLevel
    issued_at: datetime
    expires_at: datetime
    document_key: str
    title: str
    file_type: str
    signature: str = ""
    token: str = ""
    # 签入令牌的编辑器配置（不含 iat/exp）
    config: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at 必须晚于 issued_at")

    @property
    def validity(self) -> timedelta:
        return self.expires_at - self.issued_at

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            # 无时区信息按 UTC 处理
            now = now.replace(tzinfo=timezone.utc)
        return now >= self.expires_at
