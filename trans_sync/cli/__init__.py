# trans_sync/cli/__init__.py
