# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Defines background tasks for outgoing email and periodic maintenance.
#
# Tasks:
# - send_welcome_email: After registration
# - send_password_reset_email: Carries the one-time reset token
# - purge_expired_sessions: Daily cleanup of dead auth sessions
# - lift_expired_suspensions: Clears suspensions whose end has passed
#
# Email delivery goes through an outbox: the message is written to the
# email_outbox table and logged. A mail relay drains the table.
# =============================================================================

import logging
from typing import Any

from celery import shared_task

logger = logging.getLogger(__name__)

OUTBOX_TABLE = "email_outbox"


def queue_email(to: str, subject: str, body: str, template: str) -> dict[str, Any]:
    """
    Write a message to the outbox.

    Returns:
        The outbox row
    """
    from lib.supabase_client import SupabaseClient
    from lib.utils import new_id, utc_now_iso

    row = SupabaseClient.insert_row(OUTBOX_TABLE, {
        "id": new_id(),
        "recipient": to,
        "subject": subject,
        "body": body,
        "template": template,
        "created_at": utc_now_iso(),
        "sent_at": None,
    })
    logger.info(f"Queued '{template}' email to {to}")
    return row


# =============================================================================
# Email Tasks
# =============================================================================

@shared_task(bind=True, name="workers.tasks.send_welcome_email")
def send_welcome_email(self, email: str, username: str) -> dict[str, Any]:
    """
    Greet a newly registered user.

    Args:
        email: Recipient address
        username: Name used in the greeting
    """
    try:
        row = queue_email(
            to=email,
            subject="Welcome to Agora",
            body=f"Hi {username},\n\nYour account is ready. Join a community and say hello!",
            template="welcome",
        )
        return {"success": True, "outbox_id": row["id"]}

    except Exception as e:
        logger.exception(f"Welcome email failed: {e}")
        raise self.retry(exc=e)


@shared_task(bind=True, name="workers.tasks.send_password_reset_email")
def send_password_reset_email(self, email: str, token: str) -> dict[str, Any]:
    """
    Send the password reset link.

    The token is only ever stored hashed, so this message is the one place
    it exists in plain text.
    """
    from app.config import settings

    link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"
    try:
        row = queue_email(
            to=email,
            subject="Reset your Agora password",
            body=(
                "Someone asked to reset the password of this account.\n\n"
                f"Open {link} within {settings.PASSWORD_RESET_TTL_MINUTES} minutes to choose a new one. "
                "If it wasn't you, ignore this email."
            ),
            template="password_reset",
        )
        return {"success": True, "outbox_id": row["id"]}

    except Exception as e:
        logger.exception(f"Password reset email failed: {e}")
        raise self.retry(exc=e)


# =============================================================================
# Maintenance Tasks (celery beat)
# =============================================================================

@shared_task(bind=True, name="workers.tasks.purge_expired_sessions")
def purge_expired_sessions(self, older_than_days: int = 7) -> dict[str, Any]:
    """Delete sessions that expired or were revoked over a week ago."""
    try:
        from core.services.session_service import SessionService

        purged = SessionService.purge_expired(older_than_days)
        logger.info(f"Purged {purged} expired sessions")
        return {"success": True, "purged": purged}

    except Exception as e:
        logger.exception(f"Session purge failed: {e}")
        return {"success": False, "error": str(e)}


@shared_task(bind=True, name="workers.tasks.lift_expired_suspensions")
def lift_expired_suspensions(self) -> dict[str, Any]:
    """Clear suspended_until on accounts whose suspension has run out."""
    try:
        from core.services.moderation_service import ModerationService

        lifted = ModerationService.lift_expired_suspensions()
        logger.info(f"Lifted {lifted} expired suspensions")
        return {"success": True, "lifted": lifted}

    except Exception as e:
        logger.exception(f"Lifting suspensions failed: {e}")
        return {"success": False, "error": str(e)}
