# trans_sync/pipeline/__init__.py
"""翻译任务流水线：入队、批量翻译、质量审核与顺序 Worker。"""

from .enqueue import JobEnqueuer
from .reviewer import QualityReviewer, parse_review, status_for_score
from .translator import BulkTranslator
from .worker import SequentialWorker

__all__ = [
    "BulkTranslator",
    "JobEnqueuer",
    "QualityReviewer",
    "SequentialWorker",
    "parse_review",
    "status_for_score",
]
