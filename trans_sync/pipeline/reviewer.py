# trans_sync/pipeline/reviewer.py
"""
质量审核器：请文本生成服务对整份 (原文, 译文) 列表打分。

分数决定定性结论，模型自己给出的 status 不被采信。
响应无法解析属于软失败：分数记 0、状态记 review_failed，任务仍然完成。
上游调用本身抛出的异常则原样向上传播，由 Worker 计入尝试次数。
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Sequence
from typing import Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from trans_sync.config import ReviewSettings
from trans_sync.interfaces import TextGenerationClient
from trans_sync.locales import language_name
from trans_sync.types import ChatMessage, ReviewResult, ReviewStatus

logger = structlog.get_logger(__name__)

REVIEW_PROMPT_TEMPLATE = """You are a professional translation quality reviewer specializing in {target_language} {domain} content.

Review the following {source_language} to {target_language} translations for quality:

ORIGINAL TEXTS:
{originals}

TRANSLATED TEXTS:
{translations}

Evaluate based on:
1. Accuracy (meaning preserved)
2. Fluency (natural {target_language})
3. Cultural appropriateness
4. Marketing effectiveness
5. Consistency
6. Completeness (no {source_language} left)

Provide:
- Score: 0-100 (100 = perfect)
- Status: "excellent" (90+), "good" (70-89), "needs_review" (50-69), "poor" (<50)
- Notes: Brief feedback on quality and any issues

Format your response as JSON:
{{"score": 85, "status": "good", "notes": "High quality translation with natural flow."}}"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class _RawReview(BaseModel):
    score: float = Field(ge=0, le=100)
    notes: Optional[str] = None


def status_for_score(score: float) -> ReviewStatus:
    """按分数区间返回审核结论：>=90 excellent，70-89 good，50-69 needs_review，<50 poor。"""
    if score >= 90:
        return ReviewStatus.EXCELLENT
    if score >= 70:
        return ReviewStatus.GOOD
    if score >= 50:
        return ReviewStatus.NEEDS_REVIEW
    return ReviewStatus.POOR


def review_failed(reason: str) -> ReviewResult:
    return ReviewResult(
        score=0, status=ReviewStatus.REVIEW_FAILED, notes=f"Review failed: {reason}"
    )


def parse_review(text: str) -> ReviewResult:
    """解析审核响应；任何解析问题都返回 review_failed 结果而不是抛出异常。"""
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        return review_failed("response contains no JSON object")
    try:
        raw = _RawReview.model_validate(json.loads(match.group(0)))
    except json.JSONDecodeError as e:
        return review_failed(f"invalid JSON: {e}")
    except ValidationError as e:
        return review_failed(f"unexpected review shape: {e.error_count()} error(s)")

    # 向下取整存储，69.5 不能跨过 70 分的完成线
    return ReviewResult(
        score=math.floor(raw.score),
        status=status_for_score(raw.score),
        notes=raw.notes or "No notes provided",
    )


class QualityReviewer:
    """对一个任务的全部译文执行一次质量审核。"""

    def __init__(
        self,
        client: TextGenerationClient,
        settings: ReviewSettings,
        source_locale: str = "en",
        domain: str = "travel and tourism",
    ):
        self._client = client
        self._settings = settings
        self._source_locale = source_locale
        self._domain = domain

    def _build_prompt(
        self, originals: Sequence[str], translations: Sequence[str], target_locale: str
    ) -> str:
        return REVIEW_PROMPT_TEMPLATE.format(
            target_language=language_name(target_locale),
            source_language=language_name(self._source_locale),
            domain=self._domain,
            originals="\n".join(f"{i}. {t}" for i, t in enumerate(originals, start=1)),
            translations="\n".join(
                f"{i}. {t}" for i, t in enumerate(translations, start=1)
            ),
        )

    async def review(
        self, originals: Sequence[str], translations: Sequence[str], target_locale: str
    ) -> ReviewResult:
        if len(originals) != len(translations):
            return review_failed(
                f"length mismatch: {len(originals)} originals vs {len(translations)} translations"
            )
        if not originals:
            # 没有可翻译内容时无需调用上游
            return ReviewResult(
                score=100, status=ReviewStatus.EXCELLENT, notes="Nothing to review"
            )

        response = await self._client.complete(
            [ChatMessage(role="user", content=self._build_prompt(originals, translations, target_locale))],
            max_tokens=self._settings.max_tokens,
            temperature=self._settings.temperature,
            json_mode=True,
        )
        result = parse_review(response)
        if result.status is ReviewStatus.REVIEW_FAILED:
            logger.warning("审核响应解析失败。", locale=target_locale, notes=result.notes)
        return result
