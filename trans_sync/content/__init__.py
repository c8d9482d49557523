# trans_sync/content/__init__.py
"""文档内容处理：指纹计算与可翻译字符串的抽取/重建。"""

from .extractor import extract_strings, is_translatable, rebuild_document
from .fingerprint import canonical_json, compute_fingerprint

__all__ = [
    "canonical_json",
    "compute_fingerprint",
    "extract_strings",
    "is_translatable",
    "rebuild_document",
]
