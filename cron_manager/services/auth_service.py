"""Email/password and GitHub OAuth login, resolving to a user id."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..config import Settings, settings
from ..errors import ConflictError, InfrastructureError, ValidationError
from ..ids import generate_user_id
from ..repositories.user_repository import UserRepository
from ..saga import Saga
from ..security import hash_password, verify_password

logger = logging.getLogger("cron_manager.services.auth_service")

GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.users = users
        self.config = config
        self.transport = transport

    async def _create_user_with_identity(
        self, auth_type: str, external_id: str, name: str, picture: Optional[str] = None, **attributes
    ) -> str:
        """Bind the identity first so a taken email/account never leaves a stray user."""
        user_id = generate_user_id()
        saga = (
            Saga(f"register_{auth_type}")
            .step(
                "bind identity",
                lambda: self.users.create_identity(auth_type, external_id, user_id, **attributes),
                lambda: self.users.delete_identity(auth_type, external_id),
            )
            .step("create user", lambda: self.users.create(user_id, name, picture))
        )
        await saga.execute()
        logger.info("Registered %s user %s", auth_type, user_id)
        return user_id

    # ── Email ───────────────────────────────────────────────────────────────────

    async def register_email(self, name: str, email: str, password: str) -> str:
        email = (email or "").strip().lower()
        if "@" not in email:
            raise ValidationError("Invalid email")
        if not password:
            raise ValidationError("Password is required")
        if not name or len(name.strip()) < 1:
            raise ValidationError("Name is required")

        try:
            return await self._create_user_with_identity(
                "email", email, name.strip(), Email=email, HashedPassword=hash_password(password)
            )
        except ConflictError as exc:
            raise ConflictError("Email already registered") from exc

    def validate_email_auth(self, email: str, password: str) -> Optional[str]:
        """Return the user id for valid credentials, otherwise ``None``."""
        identity = self.users.get_identity("email", (email or "").strip().lower())
        if not identity:
            return None
        if not verify_password(identity.get("HashedPassword", ""), password or ""):
            return None
        return identity["UserId"]

    # ── GitHub ──────────────────────────────────────────────────────────────────

    async def _fetch_github_profile(self, code: str) -> Optional[dict]:
        async with httpx.AsyncClient(transport=self.transport, timeout=10.0) as client:
            token_resp = await client.post(
                GITHUB_TOKEN_URL,
                data={
                    "client_id": self.config.GITHUB_CLIENT_ID,
                    "client_secret": self.config.GITHUB_CLIENT_SECRET,
                    "code": code,
                },
                headers={"Accept": "application/json"},
            )
            access_token = token_resp.json().get("access_token") if token_resp.is_success else None
            if not access_token:
                return None

            user_resp = await client.get(
                GITHUB_USER_URL,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/vnd.github+json",
                },
            )
            if not user_resp.is_success:
                return None
            return user_resp.json()

    async def validate_github_auth(self, code: str) -> Optional[str]:
        """Exchange an OAuth code; first login creates the user."""
        if not code:
            return None
        try:
            profile = await self._fetch_github_profile(code)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("GitHub login failed: %s", exc)
            raise InfrastructureError("GitHub login failed") from exc
        if not profile or "id" not in profile:
            return None

        github_id = str(profile["id"])
        identity = self.users.get_identity("github", github_id)
        if identity:
            return identity["UserId"]

        try:
            return await self._create_user_with_identity(
                "github",
                github_id,
                profile.get("name") or profile.get("login") or github_id,
                profile.get("avatar_url"),
                GithubLogin=profile.get("login", ""),
            )
        except ConflictError:
            # Concurrent first login bound the account already.
            identity = self.users.get_identity("github", github_id)
            return identity["UserId"] if identity else None
