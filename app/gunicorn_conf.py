import os

# Gunicorn config variables
bind = f"{os.getenv('HOST', '127.0.0.1')}:{os.getenv('PORT', '8000')}"
# All rooms, keys and messages live in process memory. A second worker would
# hold a second, disjoint store, so this must stay at 1.
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 120
keepalive = 5
# No max_requests: recycling the worker would drop every room.
accesslog = os.getenv("ACCESS_LOG", "-")
errorlog = os.getenv("ERROR_LOG", "-")
loglevel = "debug" if os.getenv("DEBUG", "false").lower() == "true" else "info"
daemon = False
