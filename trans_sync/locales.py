# trans_sync/locales.py
"""语言代码相关的工具：校验、显示名称以及入队优先级策略。"""

from __future__ import annotations

from typing import Optional

import langcodes

from trans_sync.config import LocaleSettings
from trans_sync.exceptions import UnsupportedLocaleError

# 提示词中使用的语言英文名称
LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "sv": "Swedish",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "da": "Danish",
    "no": "Norwegian",
    "fi": "Finnish",
    "ja": "Japanese",
    "zh": "Chinese (Simplified)",
    "ru": "Russian",
}


def language_name(locale: str) -> str:
    """返回语言的英文名称；未知代码原样返回。"""
    return LANGUAGE_NAMES.get(locale, locale)


class LocalePolicy:
    """封装支持的语言集合与优先级分配规则。"""

    def __init__(self, settings: LocaleSettings):
        self._settings = settings
        self._supported = tuple(dict.fromkeys(settings.supported))

    @property
    def canonical(self) -> str:
        return self._settings.canonical

    @property
    def supported(self) -> tuple[str, ...]:
        return self._supported

    @property
    def targets(self) -> list[str]:
        """除规范语言之外的所有目标语言，保持配置顺序。"""
        return [code for code in self._supported if code != self.canonical]

    def is_supported(self, locale: Optional[str]) -> bool:
        return bool(locale) and locale in self._supported

    def validate(self, locale: Optional[str]) -> str:
        """
        校验并返回语言代码。

        Raises:
            UnsupportedLocaleError: 代码缺失、格式非法或不在支持列表中。
        """
        if not locale or not langcodes.tag_is_valid(locale):
            raise UnsupportedLocaleError(locale, self._supported)
        if locale not in self._supported:
            raise UnsupportedLocaleError(locale, self._supported)
        return locale

    def validate_target(self, locale: Optional[str]) -> str:
        """校验语言代码，并要求它不是规范语言本身。"""
        code = self.validate(locale)
        if code == self.canonical:
            raise UnsupportedLocaleError(code, self.targets)
        return code

    def priority_for(self, locale: str) -> int:
        if locale in self._settings.high_priority:
            return self._settings.high_priority_value
        return self._settings.default_priority_value

    @property
    def regenerate_priority(self) -> int:
        return self._settings.regenerate_priority_value
