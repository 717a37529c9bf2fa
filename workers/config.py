# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Applied with app.config_from_object("workers.config:CeleryConfig").
# Everything environment-specific comes from app.config.settings so the API
# and the workers read the same .env.
# =============================================================================

from celery.schedules import crontab

from app.config import settings

EMAIL_QUEUE = "email"
DEFAULT_QUEUE = "default"


class CeleryConfig:
    """Broker, routing and beat settings for the Agora workers."""

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL
    result_expires = 3600

    # Tests and single-process dev setups run tasks inline
    task_always_eager = settings.CELERY_TASK_ALWAYS_EAGER
    task_eager_propagates = True

    # Email tasks are retried, so a crash mid-send must redeliver
    task_acks_late = True
    worker_prefetch_multiplier = 1
    task_time_limit = 60
    task_soft_time_limit = 45

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    task_default_queue = DEFAULT_QUEUE
    task_routes = {
        "workers.tasks.send_welcome_email": {"queue": EMAIL_QUEUE},
        "workers.tasks.send_password_reset_email": {"queue": EMAIL_QUEUE},
    }
    task_annotations = {
        "workers.tasks.send_welcome_email": {"max_retries": 5, "default_retry_delay": 30},
        "workers.tasks.send_password_reset_email": {"max_retries": 5, "default_retry_delay": 10},
    }

    # -------------------------------------------------------------------------
    # Periodic Tasks (celery beat)
    # -------------------------------------------------------------------------

    beat_schedule = {
        "lift-expired-suspensions": {
            "task": "workers.tasks.lift_expired_suspensions",
            "schedule": crontab(minute="*/5"),
        },
        "purge-expired-sessions": {
            "task": "workers.tasks.purge_expired_sessions",
            "schedule": crontab(hour=3, minute=0),
            "kwargs": {"older_than_days": 7},
        },
    }

    timezone = "UTC"
    enable_utc = True
