# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and task definitions for
# outgoing email and periodic maintenance.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions (emails, session purge, suspension expiry)
# - config.py: Worker-specific settings and beat schedule
#
# Usage:
#   # Start worker
#   celery -A workers.celery_app worker --loglevel=info
#
#   # Submit task (from API)
#   from workers.tasks import send_welcome_email
#   send_welcome_email.delay(email, username)
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
