"""
Gunicorn configuration.
"""
import os

# Bind to the platform PORT or default
bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# WebSocket connections hold a thread each, so use threaded workers.
# The in-process connection hub is per worker: keep a single worker unless
# notifications are fanned out across processes.
workers = int(os.getenv('GUNICORN_WORKERS', '1'))
worker_class = 'gthread'
threads = int(os.getenv('GUNICORN_THREADS', '50'))
timeout = 120
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

# Process naming
proc_name = 'creatorconnect'

preload_app = True

# Graceful restart
graceful_timeout = 30

def on_starting(server):
    print("[Gunicorn] Starting CreatorConnect server...")

def on_exit(server):
    print("[Gunicorn] CreatorConnect server shutting down...")
