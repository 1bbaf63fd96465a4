from __future__ import annotations

import logging
import re
from typing import List, Optional

from ..config import settings
from ..errors import ConflictError
from ..ids import generate_session_secret
from ..repositories.session_repository import SessionRepository
from ..schemas.auth import SessionMeta, SessionSummary, UserSession

logger = logging.getLogger("cron_manager.services.session_service")

SESSION_PREFIX = "uz_"
_TOKEN_RE = re.compile(r"uz_([^.]+)\.(.+)")


def parse_session_user(token: str) -> Optional[str]:
    """Return the user id embedded in a session token, or ``None`` if malformed."""
    match = _TOKEN_RE.fullmatch(token or "")
    return match.group(1) if match else None


class SessionService:
    def __init__(self, sessions: SessionRepository):
        self.sessions = sessions

    def create_session(
        self,
        user_id: str,
        meta: Optional[SessionMeta] = None,
        ttl_seconds: int = settings.SESSION_TTL_SECONDS,
    ) -> str:
        session_id = f"{SESSION_PREFIX}{user_id}.{generate_session_secret()}"
        try:
            self.sessions.create(session_id, user_id, meta or SessionMeta(), ttl_seconds)
        except ConflictError:
            logger.error("Session id collision for user %s", user_id)
            raise ConflictError("Session already exists")
        logger.info("Created session for user %s", user_id)
        return session_id

    def validate_session(self, token: str, workspace_id: Optional[str] = None) -> Optional[UserSession]:
        """Resolve a bearer token to its user and, if asked, the workspace role.

        Performs one batched read of the session, the user profile and the
        membership. Any missing piece yields ``None`` without saying which.
        """
        user_id = parse_session_user(token)
        if user_id is None:
            return None

        found = self.sessions.lookup(token, user_id, workspace_id)
        if not found.session_found or found.user is None:
            return None
        if workspace_id and found.membership is None:
            return None

        role = found.membership.role if found.membership else ""
        return UserSession(user=found.user, role=role)

    def get_all_sessions(self, user_id: str) -> List[SessionSummary]:
        return self.sessions.list_by_user(user_id)

    def revoke_session(self, session_id: str) -> None:
        self.sessions.delete(session_id)

    def revoke_suffix_session(self, user_id: str, suffix: str) -> int:
        """Revoke every session of the user whose id ends with ``suffix``."""
        if not suffix:
            return 0
        matched = [s for s in self.get_all_sessions(user_id) if s.session_id.endswith(suffix)]
        for session in matched:
            self.revoke_session(session.session_id)
        logger.info("Revoked %d session(s) for user %s", len(matched), user_id)
        return len(matched)
