# trans_sync/content/fingerprint.py
"""
内容指纹：对文档的 RFC 8785 (JCS) 规范化序列化结果计算 SHA-256。

JCS 对对象键做固定排序，因此逻辑上相同的两个文档无论键的插入顺序如何，
都会得到相同的指纹。
"""

from __future__ import annotations

import hashlib
import math
from typing import Any

import rfc8785

from trans_sync.exceptions import CanonicalizationError


def _assert_i_json_compat(value: Any, path: str = "$") -> None:
    """I-JSON 守卫"""
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise CanonicalizationError(
                    f"{path}: object key must be str, got {type(k)}"
                )
            _assert_i_json_compat(v, f"{path}.{k}")
        return
    if isinstance(value, (list, tuple)):
        for i, v in enumerate(value):
            _assert_i_json_compat(v, f"{path}[{i}]")
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalizationError(f"{path}: non-finite float {value!r}")
        return
    if isinstance(value, (str, int, bool)) or value is None:
        return
    raise CanonicalizationError(f"{path}: unsupported type {type(value)}")


def canonical_bytes(document: Any) -> bytes:
    """将文档按 RFC 8785 规范化为 UTF-8 字节串。"""
    _assert_i_json_compat(document)
    try:
        return rfc8785.dumps(document)
    except Exception as e:
        raise CanonicalizationError(f"JCS canonicalization failed: {e}") from e


def canonical_json(document: Any) -> str:
    """返回 JCS 文本（用于日志与排错）。"""
    return canonical_bytes(document).decode("utf-8")


def compute_fingerprint(document: Any) -> str:
    """返回文档的小写十六进制 SHA-256 指纹（64 个字符）。"""
    return hashlib.sha256(canonical_bytes(document)).hexdigest()
