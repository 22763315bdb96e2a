"""
ONLYOFFICE 编辑器配置辅助函数

生成的配置对象既是前端 DocsAPI.DocEditor 的初始化参数，也是 JWT 的 claims，
字段名与嵌套结构必须与 Document Server 的 API 保持一致。
"""
import hashlib
import posixpath
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

from docgrant.models.grant import AccessLevel

DEFAULT_FILE_TYPE = "docx"

# 扩展名 -> documentType
_DOCUMENT_TYPES = {
    "word": (
        "doc", "docm", "docx", "dot", "dotm", "dotx", "epub", "fb2", "fodt",
        "htm", "html", "mht", "mhtml", "odt", "ott", "rtf", "txt", "xml",
    ),
    "cell": (
        "csv", "fods", "ods", "ots", "xls", "xlsb", "xlsm", "xlsx", "xlt",
        "xltm", "xltx",
    ),
    "slide": (
        "fodp", "odp", "otp", "pot", "potm", "potx", "pps", "ppsm", "ppsx",
        "ppt", "pptm", "pptx",
    ),
    "pdf": ("djvu", "oxps", "pdf", "xps"),
}
FILE_TYPE_TO_DOCUMENT_TYPE = {
    ext: doc_type for doc_type, exts in _DOCUMENT_TYPES.items() for ext in exts
}


def document_type_for(file_type: str) -> str:
    """
    根据文件扩展名返回 ONLYOFFICE 的 documentType

    Raises:
        ValueError: 编辑器不支持的文件类型
    """
    ext = file_type.lower().lstrip(".")
    try:
        return FILE_TYPE_TO_DOCUMENT_TYPE[ext]
    except KeyError:
        raise ValueError(f"不支持的文件类型: {file_type}") from None


def file_name_from_url(file_url: str) -> str:
    """取 URL 路径最后一段作为文件名"""
    path = unquote(urlparse(file_url).path)
    return posixpath.basename(path.rstrip("/"))


def file_type_from_url(file_url: str) -> str:
    name = file_name_from_url(file_url)
    if "." not in name:
        return DEFAULT_FILE_TYPE
    return name.rsplit(".", 1)[-1].lower()


def derive_document_key(file_url: str) -> str:
    """
    由文档地址生成稳定的 document.key

    同一文档的会话共用同一个 key，才能进入同一个协同编辑会话。
    """
    return hashlib.sha256(file_url.encode("utf-8")).hexdigest()[:32]


def get_onlyoffice_config(
    file_url: str,
    document_key: str,
    title: str,
    file_type: str,
    access_level: AccessLevel,
    callback_url: Optional[str] = None,
    user_id: Optional[str] = None,
    user_name: Optional[str] = None,
    lang: str = "en",
    goback_url: Optional[str] = None
) -> Dict[str, Any]:
    """
    生成 OnlyOffice 编辑器配置

    Args:
        file_url: Document Server 可访问的文档地址
        document_key: 文档唯一标识
        title: 文档标题
        file_type: 文件扩展名
        access_level: 访问级别，决定 mode 与 permissions
        callback_url: 保存回调地址，仅可编辑/评论时写入
        user_id: 用户ID
        user_name: 用户名
        lang: 编辑器界面语言
        goback_url: “返回”按钮地址

    Returns:
        OnlyOffice 配置字典
    """
    editor_config: Dict[str, Any] = {
        "mode": access_level.editor_mode,
        "lang": lang,
    }
    if user_id or user_name:
        user: Dict[str, str] = {}
        if user_id:
            user["id"] = user_id
        if user_name:
            user["name"] = user_name
        editor_config["user"] = user
    # 只读会话不会产生修改，不需要回调
    if callback_url and access_level > AccessLevel.VIEW_ONLY:
        editor_config["callbackUrl"] = callback_url

    customization: Dict[str, Any] = {
        "features": {"spellcheck": False},
    }
    if goback_url:
        customization["goback"] = {"url": goback_url}
    editor_config["customization"] = customization

    return {
        "document": {
            "fileType": file_type,
            "key": document_key,
            "title": title,
            "url": file_url,
            "permissions": access_level.permissions(),
        },
        "documentType": document_type_for(file_type),
        "editorConfig": editor_config,
    }
