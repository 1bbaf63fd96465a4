import logging
from typing import List

from ..errors import ValidationError
from ..ids import generate_workspace_id
from ..repositories.user_repository import UserRepository
from ..repositories.workspace_repository import WorkspaceRepository
from ..schemas.auth import UserRecord, WorkspaceSummary

logger = logging.getLogger("cron_manager.services.workspace_service")


class WorkspaceService:
    def __init__(self, workspaces: WorkspaceRepository, users: UserRepository):
        self.workspaces = workspaces
        self.users = users

    def create_workspace(self, user_id: str, name: str) -> str:
        """Create a workspace owned by ``user_id``; both rows are written atomically."""
        if not name or not name.strip():
            raise ValidationError("Workspace name is required")
        workspace_id = generate_workspace_id()
        self.workspaces.create(workspace_id, name.strip(), owner_id=user_id)
        logger.info("Created workspace %s for user %s", workspace_id, user_id)
        return workspace_id

    def get_workspaces_by_user(self, user_id: str) -> List[WorkspaceSummary]:
        return self.workspaces.list_by_user(user_id)

    def get_workspace_users(self, workspace_id: str) -> List[UserRecord]:
        user_ids = self.workspaces.list_member_ids(workspace_id)
        return self.users.batch_get(user_ids)
