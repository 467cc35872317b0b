import os


def _as_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw is not None else int(default)
    except (TypeError, ValueError):
        return int(default)


# nutria API: `gunicorn` with no arguments serves wsgi:app on $PORT.
wsgi_app = os.getenv("GUNICORN_APP", "wsgi:app")
bind = os.getenv("GUNICORN_BIND", f"0.0.0.0:{os.getenv('PORT', '5000')}")

requested_workers = _as_int("GUNICORN_WORKERS", _as_int("WEB_CONCURRENCY", 2))
requested_threads = _as_int("GUNICORN_THREADS", 4)
workers = max(1, min(requested_workers, 8))
threads = max(1, min(requested_threads, 8))
worker_class = os.getenv("GUNICORN_WORKER_CLASS", "gthread")

# Plan generation waits on the generative API and reports render PDFs in-process.
timeout = _as_int("GUNICORN_TIMEOUT", 120)
graceful_timeout = _as_int("GUNICORN_GRACEFUL_TIMEOUT", 30)
keepalive = _as_int("GUNICORN_KEEPALIVE", 5)

max_requests = _as_int("GUNICORN_MAX_REQUESTS", 500)
max_requests_jitter = _as_int("GUNICORN_MAX_REQUESTS_JITTER", 50)

preload_app = os.getenv("GUNICORN_PRELOAD", "false").lower() == "true"

# Access lines sit next to the app's own "/api" request log on stdout.
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", os.getenv("LOG_LEVEL", "info")).lower()
