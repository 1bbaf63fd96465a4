import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from ..dependencies import (
    get_auth_service,
    get_session_service,
    get_workspace_service,
    require_session,
    require_workspace_session,
)
from ..errors import ForbiddenError, UnauthorizedError, ValidationError
from ..schemas.auth import (
    AuthRequest,
    CreateWorkspaceRequest,
    MeResponse,
    RegisterRequest,
    RevokeSessionRequest,
    SessionListItem,
    SessionMeta,
    TokenResponse,
    UserSession,
)
from ..services.auth_service import AuthService
from ..services.session_service import SessionService, parse_session_user
from ..services.workspace_service import WorkspaceService

logger = logging.getLogger("cron_manager.routers.auth_router")

router = APIRouter(tags=["Auth"])

SUFFIX_LENGTH = 9


def _session_meta(request: Request) -> SessionMeta:
    return SessionMeta(
        ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        country=request.headers.get("cloudfront-viewer-country"),
    )


# -- Login --

@router.post("/v1/auth")
async def authenticate(
    req: AuthRequest,
    request: Request,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
):
    """Exchange email/password or a GitHub OAuth code for a session token."""
    if req.type == "email":
        user_id = auth.validate_email_auth(req.email or "", req.password or "")
    else:
        user_id = await auth.validate_github_auth(req.code or "")
    if not user_id:
        raise UnauthorizedError("Invalid credentials")

    token = sessions.create_session(user_id, _session_meta(request))
    return {"data": TokenResponse(token=token)}

@router.post("/v1/auth/register", status_code=201)
async def register(
    req: RegisterRequest,
    request: Request,
    auth: Annotated[AuthService, Depends(get_auth_service)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
):
    """Create an email/password account and sign it in."""
    user_id = await auth.register_email(req.name, req.email, req.password)
    token = sessions.create_session(user_id, _session_meta(request))
    return {"data": TokenResponse(token=token)}


# -- Sessions --

@router.get("/v1/auth/sessions")
def list_sessions(
    session: Annotated[UserSession, Depends(require_session)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
):
    """List the caller's live sessions; only an id suffix is exposed."""
    items = [
        SessionListItem(
            session_suffix=s.session_id[-SUFFIX_LENGTH:],
            created_at=s.created_at,
            last_used_timestamp=s.last_used_timestamp,
            user_agent=s.user_agent,
        )
        for s in sessions.get_all_sessions(session.user.id)
    ]
    return {"data": items}

@router.post("/v1/auth/revoke")
def revoke_session(
    req: RevokeSessionRequest,
    session: Annotated[UserSession, Depends(require_session)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
):
    """Revoke one session by full id, or every session ending with a suffix."""
    if req.session_id:
        if parse_session_user(req.session_id) != session.user.id:
            raise ForbiddenError("Forbidden")
        sessions.revoke_session(req.session_id)
        return {"data": {"revoked": 1}}
    if req.session_suffix:
        return {"data": {"revoked": sessions.revoke_suffix_session(session.user.id, req.session_suffix)}}
    raise ValidationError("session_id or session_suffix is required")


# -- Profile / workspaces --

@router.get("/v1/me")
def me(
    session: Annotated[UserSession, Depends(require_session)],
    workspaces: Annotated[WorkspaceService, Depends(get_workspace_service)],
):
    user = session.user
    return {
        "data": MeResponse(
            id=user.id,
            name=user.name,
            picture=user.picture,
            workspaces=workspaces.get_workspaces_by_user(user.id),
        )
    }

@router.post("/v1/workspace", status_code=201)
def create_workspace(
    req: CreateWorkspaceRequest,
    session: Annotated[UserSession, Depends(require_session)],
    workspaces: Annotated[WorkspaceService, Depends(get_workspace_service)],
):
    workspace_id = workspaces.create_workspace(session.user.id, req.name)
    return {"data": {"id": workspace_id}}

@router.get("/v1/workspace/{workspace_id}/users")
def list_workspace_users(
    workspace_id: str,
    session: Annotated[UserSession, Depends(require_workspace_session)],
    workspaces: Annotated[WorkspaceService, Depends(get_workspace_service)],
):
    """List members of a workspace the caller belongs to."""
    return {"data": workspaces.get_workspace_users(workspace_id)}
