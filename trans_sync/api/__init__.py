# trans_sync/api/__init__.py
"""FastAPI HTTP 接口。"""

from .app import create_app

__all__ = ["create_app"]
