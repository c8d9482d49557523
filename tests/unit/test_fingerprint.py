# tests/unit/test_fingerprint.py
"""
针对 `trans_sync.content.fingerprint` 的单元测试。

指纹必须与键的插入顺序无关，并对任何值的变化敏感。
"""

import math

import pytest

from trans_sync.content import canonical_json, compute_fingerprint
from trans_sync.exceptions import CanonicalizationError


def test_fingerprint_is_sha256_hex() -> None:
    fp = compute_fingerprint({"a": "b"})
    assert len(fp) == 64
    assert all(c in "0123456789abcdef" for c in fp)


def test_fingerprint_ignores_key_order() -> None:
    """测试逻辑相同、键顺序不同的两个文档得到相同的指纹。"""
    a = {"hero": {"title": "Hi", "cta": "Go"}, "footer": "Bye"}
    b = {"footer": "Bye", "hero": {"cta": "Go", "title": "Hi"}}
    assert compute_fingerprint(a) == compute_fingerprint(b)


@pytest.mark.parametrize(
    "changed",
    [
        {"hero": {"title": "Hello", "cta": "Go"}},
        {"hero": {"title": "Hi", "cta": "Go", "extra": None}},
        {"hero": {"title": "Hi", "cta": ["Go"]}},
    ],
)
def test_fingerprint_changes_with_content(changed: dict) -> None:
    base = {"hero": {"title": "Hi", "cta": "Go"}}
    assert compute_fingerprint(base) != compute_fingerprint(changed)


def test_canonical_json_sorts_keys_without_whitespace() -> None:
    assert canonical_json({"b": 1, "a": [True, None]}) == '{"a":[true,null],"b":1}'


@pytest.mark.parametrize(
    "bad",
    [
        {1: "non-string key"},
        {"value": math.nan},
        {"value": {1, 2}},
    ],
)
def test_non_canonicalizable_documents_are_rejected(bad: dict) -> None:
    """测试非字符串键、NaN 与不受支持的类型会抛出 CanonicalizationError。"""
    with pytest.raises(CanonicalizationError):
        compute_fingerprint(bad)
