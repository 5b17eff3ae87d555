import os


def _env_int(name: str, default: int, low: int = 1, high: int | None = None) -> int:
    try:
        value = int(os.getenv(name, default))
    except (TypeError, ValueError):
        value = default
    value = max(low, value)
    return min(value, high) if high is not None else value


wsgi_app = "nutriscan:create_app()"
bind = os.getenv("GUNICORN_BIND", f"0.0.0.0:{os.getenv('PORT', '5000')}")

# Each worker process holds its own MemStorage, so multi-worker
# deployments need STORAGE_BACKEND=database.
workers = _env_int("GUNICORN_WORKERS", _env_int("WEB_CONCURRENCY", 2), high=4)
worker_class = os.getenv("GUNICORN_WORKER_CLASS", "gthread")
threads = _env_int("GUNICORN_THREADS", 4, high=8)

# Food photo analysis can take most of OPENAI_TIMEOUT_SECONDS.
timeout = _env_int("GUNICORN_TIMEOUT", 120, low=30)
graceful_timeout = _env_int("GUNICORN_GRACEFUL_TIMEOUT", 30)
keepalive = _env_int("GUNICORN_KEEPALIVE", 5)

max_requests = _env_int("GUNICORN_MAX_REQUESTS", 500, low=0)
max_requests_jitter = _env_int("GUNICORN_MAX_REQUESTS_JITTER", 50, low=0)
preload_app = os.getenv("GUNICORN_PRELOAD", "false").lower() == "true"

accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
