import logging
from typing import Optional

from ..ids import generate_user_id
from ..repositories.user_repository import UserRepository
from ..schemas.auth import UserRecord

logger = logging.getLogger("cron_manager.services.user_service")


class UserService:
    def __init__(self, users: UserRepository):
        self.users = users

    def create_user(self, name: str, picture: Optional[str] = None, user_id: Optional[str] = None) -> str:
        user_id = user_id or generate_user_id()
        self.users.create(user_id, name, picture)
        logger.info("Created user %s", user_id)
        return user_id

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)
