# trans_sync/content/extractor.py
"""
可翻译字符串的抽取与重建。

`extract_strings` 深度优先遍历文档，产出 (点分路径, 文本) 列表；
`rebuild_document` 将（翻译后的）列表写回文档的深拷贝。
列表元素以下标作为路径分量；键本身包含 "." 或 "\\" 时会被转义，
因此对任何文档 D 都有 `rebuild_document(extract_strings(D), D) == D`。
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from trans_sync.exceptions import DocumentShapeError
from trans_sync.types import Document, ExtractedString

SKIP_KEYS: frozenset[str] = frozenset(
    {
        "locale",
        "currency",
        "version",
        "lastUpdated",
        "translatedFrom",
        "translationProvider",
        "generatedOnDemand",
        "hash",
        "source",
        "phone",
        "email",
        "htmlLang",
        "dateFormat",
        "numberFormat",
    }
)

SKIP_PREFIXES: tuple[str, ...] = ("meta.", "_metadata.", "seo.")

SKIP_VALUES: frozenset[str] = frozenset(
    {
        # 货币代码
        "USD", "EUR", "SEK", "NOK", "DKK", "JPY", "CNY",
        # 日期格式
        "MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD", "DD.MM.YYYY",
        # 区域标签
        "en-US", "sv-SE", "de-DE", "fr-FR", "es-ES", "it-IT", "pt-PT",
        "nl-NL", "da-DK", "no-NO", "fi-FI", "ja-JP", "zh-CN",
    }
)

_ISO_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T")


@dataclass(frozen=True)
class ExtractionRules:
    """决定哪些叶子会被送去翻译的排除规则。"""

    skip_keys: frozenset[str] = SKIP_KEYS
    skip_prefixes: tuple[str, ...] = SKIP_PREFIXES
    skip_values: frozenset[str] = SKIP_VALUES
    extra_skip_keys: frozenset[str] = field(default_factory=frozenset)

    def skips_key(self, key: str, path: str) -> bool:
        if key in self.skip_keys or key in self.extra_skip_keys:
            return True
        return any(path.startswith(prefix) for prefix in self.skip_prefixes)

    def skips_value(self, value: str) -> bool:
        if value in self.skip_values:
            return True
        return not is_translatable(value)


DEFAULT_RULES = ExtractionRules()


def is_translatable(value: str) -> bool:
    """过滤空串以及 URL、电话、邮箱、ISO 时间戳形状的字面量。"""
    return bool(
        value.strip()
        and not value.startswith("http")
        and not value.startswith("+")
        and "@" not in value
        and not _ISO_TIMESTAMP.match(value)
    )


def _escape(component: str) -> str:
    return component.replace("\\", "\\\\").replace(".", "\\.")


def join_path(prefix: str, component: str) -> str:
    escaped = _escape(component)
    return f"{prefix}.{escaped}" if prefix else escaped


def split_path(path: str) -> list[str]:
    """按未转义的 "." 拆分路径，并还原转义字符。"""
    parts: list[str] = []
    current: list[str] = []
    chars = iter(path)
    for ch in chars:
        if ch == "\\":
            current.append(next(chars, "\\"))
        elif ch == ".":
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


def _children(node: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(node, dict):
        yield from node.items()
    elif isinstance(node, list):
        for index, item in enumerate(node):
            yield str(index), item


def _walk(node: Any, prefix: str, rules: ExtractionRules) -> Iterator[ExtractedString]:
    for key, value in _children(node):
        path = join_path(prefix, key)
        if rules.skips_key(key, path):
            continue
        if isinstance(value, str):
            if not rules.skips_value(value):
                yield path, value
        elif isinstance(value, (dict, list)):
            yield from _walk(value, path, rules)
        # 数字、布尔与 null 是不透明标量，永远不参与翻译


def extract_strings(
    document: Document, rules: ExtractionRules = DEFAULT_RULES
) -> list[ExtractedString]:
    """
    深度优先抽取文档中所有可翻译的字符串。

    遍历顺序与映射的插入顺序一致，是确定性的；批量翻译依赖这一点
    来保证严格的位置对应。
    """
    return list(_walk(document, "", rules))


def _descend(node: Any, component: str, path: str) -> Any:
    if isinstance(node, dict):
        if component not in node:
            node[component] = {}
        child = node[component]
        if not isinstance(child, (dict, list)):
            raise DocumentShapeError(
                f"路径 {path!r} 的分量 {component!r} 与非映射值冲突: {type(child).__name__}"
            )
        return child
    if isinstance(node, list):
        index = _list_index(node, component, path)
        child = node[index]
        if not isinstance(child, (dict, list)):
            raise DocumentShapeError(
                f"路径 {path!r} 的分量 {component!r} 与非映射值冲突: {type(child).__name__}"
            )
        return child
    raise DocumentShapeError(f"路径 {path!r} 经过了非映射节点: {type(node).__name__}")


def _list_index(node: list[Any], component: str, path: str) -> int:
    if not component.isdigit() or int(component) >= len(node):
        raise DocumentShapeError(
            f"路径 {path!r} 的分量 {component!r} 不是列表的有效下标 (长度 {len(node)})"
        )
    return int(component)


def rebuild_document(
    strings: Iterable[ExtractedString], base_document: Document
) -> Document:
    """
    基于 `base_document` 的深拷贝，按路径写回每个字符串。

    缺失的中间节点会被创建为映射。

    Raises:
        DocumentShapeError: 路径上的某个分量与非映射值冲突。
    """
    result = copy.deepcopy(base_document)
    for path, text in strings:
        components = split_path(path)
        node: Any = result
        for component in components[:-1]:
            node = _descend(node, component, path)
        leaf = components[-1]
        if isinstance(node, dict):
            node[leaf] = text
        elif isinstance(node, list):
            node[_list_index(node, leaf, path)] = text
        else:
            raise DocumentShapeError(
                f"路径 {path!r} 的父节点不是映射: {type(node).__name__}"
            )
    return result
