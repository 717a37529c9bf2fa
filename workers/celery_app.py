# =============================================================================
# workers/celery_app.py - Celery Application
# =============================================================================
# One Celery app serves both queues ("email" and "default") and the beat
# scheduler for maintenance jobs.
#
# Usage:
#   celery -A workers.celery_app worker -Q default,email --loglevel=info
#   celery -A workers.celery_app beat --loglevel=info
#
# In tests CELERY_TASK_ALWAYS_EAGER=true runs every .delay() inline.
# =============================================================================

import logging

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun, task_retry

from app.config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _redacted(url: str) -> str:
    """Drop credentials from a Redis URL before logging it."""
    return url.split("@")[-1] if "@" in url else url


def create_celery_app() -> Celery:
    app = Celery("agora", include=["workers.tasks"])
    app.config_from_object("workers.config:CeleryConfig")

    mode = "eager" if settings.CELERY_TASK_ALWAYS_EAGER else "broker"
    logger.info(f"Celery app created ({mode}) with broker: {_redacted(settings.REDIS_URL)}")
    return app


celery_app = create_celery_app()


# =============================================================================
# Task Lifecycle Logging
# =============================================================================

@task_prerun.connect
def log_task_start(sender=None, task_id=None, task=None, **extra):
    logger.info(f"Task started: {task.name} [{task_id}]")


@task_postrun.connect
def log_task_done(sender=None, task_id=None, task=None, state=None, **extra):
    logger.info(f"Task finished: {task.name} [{task_id}] - {state}")


@task_retry.connect
def log_task_retry(sender=None, request=None, reason=None, **extra):
    logger.warning(f"Retrying {sender.name} [{request.id}]: {reason}")


@task_failure.connect
def log_task_failure(sender=None, task_id=None, exception=None, args=None, kwargs=None, **extra):
    logger.error(f"Task failed: {sender.name} [{task_id}] args={args} kwargs={kwargs} - {exception}")
