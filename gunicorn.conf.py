"""Gunicorn configuration for the subscription API (ASGI)."""

import os

# `gunicorn app.main:app` must still run under the ASGI worker.
worker_class = "uvicorn.workers.UvicornWorker"

bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"

# Tenant writes are optimistic (versioned), so several workers are safe.
workers = int(os.getenv("WEB_CONCURRENCY", "2"))
timeout = int(os.getenv("GUNICORN_TIMEOUT", "60"))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))

# Application logs are JSON on stdout; keep gunicorn's own output there too.
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")
