"""Gunicorn config: gunicorn claimsops.main:app -c gunicorn.conf.py"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Uvicorn async workers; each loads its own DataStore and source cache.
# Tune via WEB_CONCURRENCY env var.
worker_class = "uvicorn.workers.UvicornWorker"
workers = int(os.environ.get("WEB_CONCURRENCY", "2"))

# Timeout: first request may wait on remote source fetches
timeout = int(os.environ.get("CLAIMSOPS_WORKER_TIMEOUT", "120"))

graceful_timeout = 30

# Keep-alive must exceed the proxy keep-alive (default 60s)
keepalive = 65

accesslog = "-"
errorlog = "-"
loglevel = "info"
