import multiprocessing
import os

# gunicorn -c gunicorn_config.py ticketflow.main:app

# Server configuration
bind = f"{os.getenv('APP_HOST', '0.0.0.0')}:{os.getenv('APP_PORT', '8000')}"
workers = int(os.getenv("WEB_CONCURRENCY", max(1, multiprocessing.cpu_count())))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 1000
max_requests_jitter = 100

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Timeouts (uploads up to 5 x 10MB)
timeout = 120
graceful_timeout = 30

# Process naming
proc_name = "ticketflow-api"

# Environment
raw_env = [
    "PYTHONUNBUFFERED=1",
]
