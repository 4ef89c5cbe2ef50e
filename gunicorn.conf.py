# Gunicorn configuration for the HyrePro admin API
# Run with: gunicorn -c gunicorn.conf.py hyrepro.main:app

import os

# Bind to the port provided by the host
bind = f"0.0.0.0:{os.getenv('PORT', '10000')}"

# Calendar sync runs its own thread pool, so keep worker count small
workers = int(os.getenv("WEB_CONCURRENCY", "2"))

# ASGI app needs the uvicorn worker
worker_class = "uvicorn.workers.UvicornWorker"

# AI generation and calendar sync can be slow
timeout = 120

# Graceful timeout
graceful_timeout = 30

# Keep alive
keepalive = 5

# Log level
loglevel = "info"

# Access log
accesslog = "-"

# Error log
errorlog = "-"
