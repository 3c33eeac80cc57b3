"""
Gunicorn Configuration

Uvicorn workers under Gunicorn. Each worker opens its own database pool and
Redis client in the application lifespan, so the pool size in settings is
per worker.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 10000
max_requests_jitter = 1000
timeout = 60
keepalive = 5
graceful_timeout = 30

proc_name = "forklift-parts-api"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = None  # requests are logged by RequestLoggingMiddleware


def post_fork(server, worker):
    """Route the worker's logs through structlog."""
    from partshop.config.logging import configure_logging
    configure_logging()
