from typing import List

from ..ids import isoformat, utcnow
from ..schemas.auth import WorkspaceSummary
from .storage import GSI1, GSI1PK, GSI1SK, PK, SK, Item, Key, Store


class WorkspaceRepository:
    def __init__(self, store: Store, table: str):
        self.store = store
        self.table = table

    @staticmethod
    def membership_key(user_id: str, workspace_id: str) -> Key:
        return Key(f"user#{user_id}", f"workspace#{workspace_id}")

    @staticmethod
    def membership_from_item(item: Item) -> WorkspaceSummary:
        return WorkspaceSummary(
            id=item["WorkspaceId"],
            name=item.get("WorkspaceName", ""),
            role=item.get("Role", ""),
        )

    def create(self, workspace_id: str, name: str, owner_id: str, role: str = "owner") -> None:
        """Write the workspace and its owner membership in one transaction."""
        now = isoformat(utcnow())
        membership = self.membership_key(owner_id, workspace_id)
        self.store.transact_put(
            self.table,
            [
                {
                    PK: f"workspace#{workspace_id}",
                    SK: "meta",
                    "Id": workspace_id,
                    "Name": name,
                    "CreatedAt": now,
                    "UpdatedAt": now,
                },
                {
                    PK: membership.pk,
                    SK: membership.sk,
                    GSI1PK: f"workspace#{workspace_id}",
                    GSI1SK: f"user#{owner_id}",
                    "WorkspaceId": workspace_id,
                    "WorkspaceName": name,
                    "UserId": owner_id,
                    "Role": role,
                    "CreatedAt": now,
                    "UpdatedAt": now,
                },
            ],
        )

    def list_by_user(self, user_id: str) -> List[WorkspaceSummary]:
        page = self.store.query(self.table, f"user#{user_id}", sort_prefix="workspace#")
        return [self.membership_from_item(item) for item in page.items]

    def list_member_ids(self, workspace_id: str) -> List[str]:
        page = self.store.query(
            self.table, f"workspace#{workspace_id}", sort_prefix="user#", index=GSI1
        )
        return [item["UserId"] for item in page.items]
