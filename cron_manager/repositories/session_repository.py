import time
from dataclasses import dataclass
from typing import List, Optional

from ..ids import isoformat, utcnow
from ..schemas.auth import SessionMeta, SessionSummary, UserRecord, WorkspaceSummary
from .storage import GSI1, GSI1PK, GSI1SK, PK, SK, TTL, Item, Key, Store
from .user_repository import UserRepository
from .workspace_repository import WorkspaceRepository


@dataclass
class SessionLookup:
    """Result of the single batched read behind session validation."""

    session_found: bool
    user: Optional[UserRecord]
    membership: Optional[WorkspaceSummary]


class SessionRepository:
    def __init__(self, store: Store, table: str):
        self.store = store
        self.table = table

    @staticmethod
    def key(session_id: str) -> Key:
        return Key(f"session#{session_id}", f"session#{session_id}")

    def create(self, session_id: str, user_id: str, meta: SessionMeta, ttl_seconds: int) -> None:
        key = self.key(session_id)
        self.store.put_item(
            self.table,
            {
                PK: key.pk,
                SK: key.sk,
                GSI1PK: f"user#{user_id}",
                GSI1SK: key.sk,
                TTL: int(time.time()) + ttl_seconds,
                "SessionId": session_id,
                "UserId": user_id,
                "CreatedAt": isoformat(utcnow()),
                "LastUsedTimestamp": int(time.time() * 1000),
                "IP": meta.ip or "",
                "UserAgent": meta.user_agent or "",
                "Country": meta.country or "",
            },
            if_not_exists=True,
        )

    def lookup(self, session_id: str, user_id: str, workspace_id: Optional[str] = None) -> SessionLookup:
        session_key = self.key(session_id)
        user_key = UserRepository.key(user_id)
        keys = [session_key, user_key]
        membership_key = None
        if workspace_id:
            membership_key = WorkspaceRepository.membership_key(user_id, workspace_id)
            keys.append(membership_key)

        items = {Key(item[PK], item[SK]): item for item in self.store.batch_get(self.table, keys)}

        user_item = items.get(user_key)
        membership_item = items.get(membership_key) if membership_key else None
        return SessionLookup(
            session_found=session_key in items,
            user=UserRepository.from_item(user_item) if user_item else None,
            membership=(
                WorkspaceRepository.membership_from_item(membership_item) if membership_item else None
            ),
        )

    def list_by_user(self, user_id: str) -> List[SessionSummary]:
        page = self.store.query(self.table, f"user#{user_id}", sort_prefix="session#", index=GSI1)
        return [
            SessionSummary(
                session_id=item[PK][len("session#"):],
                created_at=item["CreatedAt"],
                last_used_timestamp=int(item.get("LastUsedTimestamp", 0)),
                user_agent=item.get("UserAgent", ""),
            )
            for item in page.items
        ]

    def delete(self, session_id: str) -> None:
        self.store.delete_item(self.table, self.key(session_id))
