import os

from celery import Celery

from edutube.core.config import configure_logging, is_test_env


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v and v.strip() else default


BROKER_URL = (
    _env("CELERY_BROKER_URL")
    or _env("REDIS_URL")
    or "redis://localhost:6379/0"
)

RESULT_BACKEND = _env("CELERY_RESULT_BACKEND") or BROKER_URL

celery_app = Celery(
    "edutube",
    broker=BROKER_URL,
    backend=RESULT_BACKEND,
)

celery_app.autodiscover_tasks(["edutube.worker"])

celery_app.conf.update(
    task_track_started=True,
    result_extended=True,
    enable_utc=True,
    timezone="UTC",
    # ENV=test runs tasks inline, so the API's .delay() returns a finished result
    task_always_eager=is_test_env(),
    task_eager_propagates=False,
    task_store_eager_result=False,
)

configure_logging()

__all__ = ["celery_app"]
