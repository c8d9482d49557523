# trans_sync/pipeline/translator.py
"""
批量翻译器：一次请求翻译一批字符串，并保证输出与输入严格按位置对应。
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog

from trans_sync.config import TranslationSettings
from trans_sync.exceptions import APIError, BatchCountMismatchError, DelimiterCollisionError
from trans_sync.interfaces import TextGenerationClient
from trans_sync.locales import language_name
from trans_sync.types import ChatMessage

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are a professional translator specializing in {domain} content with expertise in {target_language}.

Translate the following {source_language} texts to {target_language}. Each text is separated by "{delimiter}".

CRITICAL QUALITY REQUIREMENTS:
1. Maintain marketing tone and emotional appeal
2. Use natural, native-sounding language for {target_language}
3. Consider local cultural context
4. Keep proper nouns unchanged unless they have official translations
5. Preserve any markup, placeholders and punctuation exactly
6. Return translations in EXACT SAME ORDER, separated by "{delimiter}"
7. Translate EVERYTHING completely, never leave parts in {source_language}
8. Ensure consistency in terminology throughout

IMPORTANT: Return exactly {count} translations separated by "{delimiter}" and nothing else."""


class BulkTranslator:
    """通过一个文本生成客户端执行分隔符拼接式的批量翻译。"""

    def __init__(
        self,
        client: TextGenerationClient,
        settings: TranslationSettings,
        source_locale: str = "en",
    ):
        self._client = client
        self._settings = settings
        self._source_locale = source_locale
        self._separator = settings.delimiter.strip()

    def _build_messages(self, texts: Sequence[str], target_locale: str) -> list[ChatMessage]:
        system_prompt = SYSTEM_PROMPT_TEMPLATE.format(
            domain=self._settings.domain,
            source_language=language_name(self._source_locale),
            target_language=language_name(target_locale),
            delimiter=self._settings.delimiter,
            count=len(texts),
        )
        return [
            ChatMessage(role="system", content=system_prompt),
            ChatMessage(role="user", content=self._settings.delimiter.join(texts)),
        ]

    async def translate_batch(self, texts: Sequence[str], target_locale: str) -> list[str]:
        """
        在一次请求中翻译一批文本。

        Returns:
            与输入等长、同序的译文列表。

        Raises:
            DelimiterCollisionError: 某条原文本身包含分隔符。
            BatchCountMismatchError: 返回的条目数与输入不一致。
            APIError: 上游请求失败或返回空内容。
        """
        if not texts:
            return []
        for index, text in enumerate(texts):
            if self._separator in text:
                raise DelimiterCollisionError(
                    f"第 {index} 条文本包含保留分隔符 {self._separator!r}，无法批量翻译。"
                )

        response = await self._client.complete(
            self._build_messages(texts, target_locale),
            max_tokens=self._settings.max_tokens,
            temperature=self._settings.temperature,
        )
        if not response or not response.strip():
            raise APIError("翻译服务返回了空内容。")

        translations = [part.strip() for part in response.strip().split(self._separator)]
        if len(translations) != len(texts):
            logger.warning(
                "批量翻译条目数不匹配。",
                locale=target_locale,
                expected=len(texts),
                actual=len(translations),
            )
            raise BatchCountMismatchError(expected=len(texts), actual=len(translations))
        return translations

    async def translate_all(self, texts: Sequence[str], target_locale: str) -> list[str]:
        """
        按配置的批大小顺序翻译全部文本。

        批与批之间严格串行，并在批之间插入一个短暂的礼貌性延迟。
        """
        size = self._settings.batch_size
        total_batches = (len(texts) + size - 1) // size
        results: list[str] = []

        for batch_no, start in enumerate(range(0, len(texts), size), start=1):
            batch = texts[start : start + size]
            logger.debug(
                "正在翻译批次。",
                locale=target_locale,
                batch=batch_no,
                total_batches=total_batches,
                size=len(batch),
            )
            results.extend(await self.translate_batch(batch, target_locale))
            if batch_no < total_batches and self._settings.batch_delay > 0:
                await asyncio.sleep(self._settings.batch_delay)

        return results
