# trans_sync/serving/__init__.py
"""读路径：服务端缓存与回退、客户端加载器。"""

from .client import ClientLoader, HttpTranslationSource, LocalTranslationSource
from .server import TranslationServer, placeholder_document

__all__ = [
    "ClientLoader",
    "HttpTranslationSource",
    "LocalTranslationSource",
    "TranslationServer",
    "placeholder_document",
]
