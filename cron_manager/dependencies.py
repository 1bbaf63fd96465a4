"""FastAPI dependency injection providers."""

from typing import Annotated, Optional

from fastapi import Depends, Header, Path

from .config import settings
from .database import SessionLocal
from .errors import UnauthorizedError
from .repositories.storage import Store
from .repositories.sql_storage import SqlStore
from .repositories.cron_repository import CronRepository
from .repositories.cron_log_repository import CronLogRepository
from .repositories.session_repository import SessionRepository
from .repositories.user_repository import UserRepository
from .repositories.workspace_repository import WorkspaceRepository
from .clients.trigger_registry import TriggerRegistry
from .clients.eventbridge_trigger_registry import EventBridgeTriggerRegistry
from .schemas.auth import UserSession
from .services.auth_service import AuthService
from .services.cron_log_service import CronLogService
from .services.cron_service import CronService
from .services.session_service import SessionService
from .services.workspace_service import WorkspaceService

# Singletons for the store and trigger registry (can be swapped based on config)
_store = SqlStore(SessionLocal)
_triggers = EventBridgeTriggerRegistry(settings.SCHEDULER_GROUP_NAME, region_name=settings.AWS_REGION)

def get_store() -> Store:
    return _store

def get_trigger_registry() -> TriggerRegistry:
    return _triggers

def get_cron_service(
    store: Annotated[Store, Depends(get_store)],
    triggers: Annotated[TriggerRegistry, Depends(get_trigger_registry)],
) -> CronService:
    return CronService(CronRepository(store, settings.STORE_TABLE_NAME), triggers)

def get_cron_log_service(store: Annotated[Store, Depends(get_store)]) -> CronLogService:
    return CronLogService(CronLogRepository(store, settings.CRON_LOG_TABLE_NAME))

def get_session_service(store: Annotated[Store, Depends(get_store)]) -> SessionService:
    return SessionService(SessionRepository(store, settings.STORE_TABLE_NAME))

def get_workspace_service(store: Annotated[Store, Depends(get_store)]) -> WorkspaceService:
    return WorkspaceService(
        WorkspaceRepository(store, settings.STORE_TABLE_NAME),
        UserRepository(store, settings.STORE_TABLE_NAME),
    )

def get_auth_service(store: Annotated[Store, Depends(get_store)]) -> AuthService:
    return AuthService(UserRepository(store, settings.STORE_TABLE_NAME))


# ── Authorization ──────────────────────────────────────────────────────────────

def get_bearer_token(authorization: Annotated[Optional[str], Header()] = None) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError()
    return token.strip()

def require_session(
    token: Annotated[str, Depends(get_bearer_token)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> UserSession:
    session = sessions.validate_session(token)
    if session is None:
        raise UnauthorizedError()
    return session

def require_workspace_session(
    workspace_id: Annotated[str, Path()],
    token: Annotated[str, Depends(get_bearer_token)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> UserSession:
    """Session plus membership of the workspace named in the path."""
    session = sessions.validate_session(token, workspace_id)
    if session is None:
        raise UnauthorizedError()
    return session
