from typing import List, Optional, Sequence

from ..ids import isoformat, utcnow
from ..schemas.auth import UserRecord
from .storage import GSI1PK, GSI1SK, PK, SK, Item, Key, Store


class UserRepository:
    """User profiles plus the login identities (email, GitHub) pointing at them."""

    def __init__(self, store: Store, table: str):
        self.store = store
        self.table = table

    # -- Users --

    @staticmethod
    def key(user_id: str) -> Key:
        return Key(f"user#{user_id}", "meta")

    @staticmethod
    def from_item(item: Item) -> UserRecord:
        return UserRecord(
            id=item["Id"],
            name=item["Name"],
            picture=item.get("Picture"),
            created_at=item["CreatedAt"],
            updated_at=item["UpdatedAt"],
        )

    def create(self, user_id: str, name: str, picture: Optional[str] = None) -> None:
        now = isoformat(utcnow())
        key = self.key(user_id)
        item: Item = {
            PK: key.pk,
            SK: key.sk,
            "Id": user_id,
            "Name": name,
            "CreatedAt": now,
            "UpdatedAt": now,
        }
        if picture:
            item["Picture"] = picture
        self.store.put_item(self.table, item, if_not_exists=True)

    def get(self, user_id: str) -> Optional[UserRecord]:
        item = self.store.get_item(self.table, self.key(user_id))
        return self.from_item(item) if item else None

    def batch_get(self, user_ids: Sequence[str]) -> List[UserRecord]:
        items = self.store.batch_get(self.table, [self.key(uid) for uid in user_ids])
        return [self.from_item(item) for item in items]

    # -- Login identities --

    @staticmethod
    def identity_key(auth_type: str, external_id: str) -> Key:
        auth_key = f"auth#{auth_type}#{external_id}"
        return Key(auth_key, auth_key)

    def create_identity(self, auth_type: str, external_id: str, user_id: str, **attributes) -> None:
        """Bind a login identity to a user; ConflictError if it is already bound."""
        key = self.identity_key(auth_type, external_id)
        item: Item = {
            PK: key.pk,
            SK: key.sk,
            GSI1PK: f"user#{user_id}",
            GSI1SK: key.pk,
            "AuthType": auth_type,
            "UserId": user_id,
            "CreatedAt": isoformat(utcnow()),
            **attributes,
        }
        self.store.put_item(self.table, item, if_not_exists=True)

    def get_identity(self, auth_type: str, external_id: str) -> Optional[Item]:
        return self.store.get_item(self.table, self.identity_key(auth_type, external_id))

    def delete_identity(self, auth_type: str, external_id: str) -> None:
        self.store.delete_item(self.table, self.identity_key(auth_type, external_id))
