"""Gunicorn configuration for the webmention receiver.

All logs are sent to stdout/stderr for Docker visibility via
`docker compose logs`.

The mention queue and its MentionProcessor threads live inside the worker
process, so exactly one worker must run: a second worker would get its
own queue and its own processor.
"""

import sys

# Bind to all interfaces on port 5000
bind = "0.0.0.0:5000"

# Worker configuration
workers = 1
# Threads let the endpoint keep answering while one request blocks on a full queue
worker_class = "gthread"
threads = 4
timeout = 30
keepalive = 2

# Logging configuration
accesslog = "-"  # Log all HTTP requests to stdout
errorlog = "-"   # Log all errors to stderr
loglevel = "info"

# Access log format - remote address, request line, status, size, referer,
# user agent, request time in microseconds
access_log_format = (
    '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s '
    '"%(f)s" "%(a)s" %(D)s'
)

capture_output = True
enable_stdio_inheritance = True


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Starting Gunicorn for webmention receiver")


def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Gunicorn server is ready to accept webmentions")


def on_exit(server):
    """Called just before exiting Gunicorn."""
    server.log.info("Shutting down Gunicorn")


def worker_abort(worker):
    """Called when a worker receives a SIGABRT signal."""
    worker.log.error("Worker received SIGABRT signal - likely timeout")


preload_app = False
reload = False
daemon = False
pidfile = None

# Request limits
limit_request_line = 4096
limit_request_fields = 100
limit_request_field_size = 8190

logconfig_dict = {
    'version': 1,
    'disable_existing_loggers': False,
    'root': {
        'level': 'INFO',
        'handlers': ['console']
    },
    'loggers': {
        'gunicorn.error': {
            'level': 'INFO',
            'handlers': ['error_console'],
            'propagate': False,
            'qualname': 'gunicorn.error'
        },
        'gunicorn.access': {
            'level': 'INFO',
            'handlers': ['console'],
            'propagate': False,
            'qualname': 'gunicorn.access'
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'generic',
            'stream': sys.stdout
        },
        'error_console': {
            'class': 'logging.StreamHandler',
            'formatter': 'generic',
            'stream': sys.stderr
        },
    },
    'formatters': {
        'generic': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S',
            'class': 'logging.Formatter'
        }
    }
}
