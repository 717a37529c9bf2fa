# =============================================================================
# core/services/session_service.py - Login Session Store
# =============================================================================
# One row in auth_sessions per issued refresh token. Rotation creates a new
# row in the same family and revokes the old one, linking them through
# replaced_by. Presenting a revoked token again is treated as theft and
# revokes the whole family.
#
# Only the SHA-256 digest of a refresh token is stored.
# =============================================================================

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.config import settings
from lib.security import generate_opaque_token, hash_opaque_token
from lib.supabase_client import SupabaseClient
from lib.utils import iso_in, is_past, new_id, normalize_uuid, parse_timestamp, utc_now, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "auth_sessions"


class SessionService:
    """
    Service for login sessions and refresh tokens.

    Provides a clean interface between the auth flows and the database.
    """

    @staticmethod
    def create_session(
        user_id: UUID | str,
        ip_address: str | None = None,
        user_agent: str | None = None,
        family_id: str | None = None,
    ) -> tuple[dict[str, Any], str]:
        """
        Create a session and its refresh token.

        Args:
            user_id: Owner of the session
            ip_address: Client address, for the session list
            user_agent: Client user agent, for the session list
            family_id: Rotation family; a fresh login starts a new family

        Returns:
            Tuple of (session row, plain refresh token). The plain token is
            never stored and must be returned to the client now.
        """
        refresh_token = generate_opaque_token()
        now = utc_now_iso()
        session_id = new_id()

        session = SupabaseClient.insert_row(TABLE, {
            "id": session_id,
            "user_id": normalize_uuid(user_id),
            "family_id": family_id or session_id,
            "refresh_token_hash": hash_opaque_token(refresh_token),
            "ip_address": ip_address,
            "user_agent": user_agent,
            "expires_at": iso_in(days=settings.REFRESH_TOKEN_TTL_DAYS),
            "revoked_at": None,
            "replaced_by": None,
            "created_at": now,
            "last_used_at": now,
        })

        logger.info(f"Created session {session_id} for user {user_id}")
        return session, refresh_token

    @staticmethod
    def get_session(session_id: UUID | str) -> dict[str, Any] | None:
        return SupabaseClient.fetch_one(TABLE, id=normalize_uuid(session_id))

    @staticmethod
    def find_by_refresh_token(refresh_token: str) -> dict[str, Any] | None:
        return SupabaseClient.fetch_one(TABLE, refresh_token_hash=hash_opaque_token(refresh_token))

    @staticmethod
    def is_active(session: dict[str, Any] | None) -> bool:
        """A session is active until revoked or expired."""
        return bool(session) and not session.get("revoked_at") and not is_past(session.get("expires_at"))

    @staticmethod
    def _close_sockets(user_id: str, session_ids: list[str]) -> None:
        """Ask the API processes to drop sockets opened by these sessions."""
        from app.websocket.broadcast import EVENT_SESSIONS_REVOKED, publish_event

        if session_ids:
            publish_event(user_id, EVENT_SESSIONS_REVOKED, {"session_ids": session_ids})

    @staticmethod
    def revoke(session_id: UUID | str, replaced_by: str | None = None) -> None:
        """
        Revoke one session.

        A rotated session (replaced_by set) keeps its sockets open; the
        client carries on with the new token pair.
        """
        data: dict[str, Any] = {"revoked_at": utc_now_iso()}
        if replaced_by:
            data["replaced_by"] = replaced_by
        row = SupabaseClient.update_row(TABLE, session_id, data)
        logger.info(f"Revoked session {session_id}")

        if row and not replaced_by:
            SessionService._close_sockets(row["user_id"], [row["id"]])

    @staticmethod
    def revoke_family(family_id: str) -> int:
        """Revoke every live session descended from one login."""
        revoked = SupabaseClient.update_where(
            TABLE,
            {"revoked_at": utc_now_iso()},
            family_id=family_id,
            revoked_at=None,
        )
        logger.warning(f"Revoked {len(revoked)} sessions in family {family_id}")
        if revoked:
            SessionService._close_sockets(revoked[0]["user_id"], [row["id"] for row in revoked])
        return len(revoked)

    @staticmethod
    def revoke_all_for_user(
        user_id: UUID | str,
        except_session_id: UUID | str | None = None,
    ) -> int:
        """
        Revoke every live session of a user.

        Args:
            user_id: Whose sessions to revoke
            except_session_id: Keep this one (e.g. the caller's own session)

        Returns:
            Number of sessions revoked
        """
        live = SupabaseClient.fetch_all(TABLE, user_id=normalize_uuid(user_id), revoked_at=None)
        keep = normalize_uuid(except_session_id) if except_session_id else None

        revoked = []
        now = utc_now_iso()
        for session in live:
            if session["id"] == keep:
                continue
            SupabaseClient.update_row(TABLE, session["id"], {"revoked_at": now})
            revoked.append(session["id"])

        logger.info(f"Revoked {len(revoked)} sessions for user {user_id}")
        SessionService._close_sockets(normalize_uuid(user_id), revoked)
        return len(revoked)

    @staticmethod
    def list_active(user_id: UUID | str) -> list[dict[str, Any]]:
        """Active sessions, newest first."""
        rows = SupabaseClient.fetch_all(
            TABLE,
            order_by="created_at",
            desc=True,
            user_id=normalize_uuid(user_id),
            revoked_at=None,
        )
        return [row for row in rows if not is_past(row.get("expires_at"))]

    @staticmethod
    def touch(session: dict[str, Any]) -> None:
        """Record that a session was used, at most once per SESSION_TOUCH_INTERVAL_SECONDS."""
        last_used = parse_timestamp(session.get("last_used_at"))
        if last_used and utc_now() - last_used < timedelta(seconds=settings.SESSION_TOUCH_INTERVAL_SECONDS):
            return
        SupabaseClient.update_row(TABLE, session["id"], {"last_used_at": utc_now_iso()})

    @staticmethod
    def purge_expired(older_than_days: int = 7) -> int:
        """
        Delete sessions that expired or were revoked long enough ago.

        Called by the purge_expired_sessions background task.
        """
        client = SupabaseClient.get_client()
        cutoff = iso_in(days=-older_than_days)

        expired = client.table(TABLE).delete().lt("expires_at", cutoff).execute()
        revoked = client.table(TABLE).delete().lt("revoked_at", cutoff).execute()

        count = len(expired.data or []) + len(revoked.data or [])
        logger.info(f"Purged {count} stale sessions")
        return count
