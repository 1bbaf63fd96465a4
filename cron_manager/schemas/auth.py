from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel


class UserRecord(BaseModel):
    id: str
    name: str
    picture: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class WorkspaceSummary(BaseModel):
    id: str
    name: str = ""
    role: str = ""


class SessionMeta(BaseModel):
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    country: Optional[str] = None


class SessionSummary(BaseModel):
    session_id: str
    created_at: datetime
    last_used_timestamp: int
    user_agent: str = ""


class UserSession(BaseModel):
    user: UserRecord
    role: str = ""  # empty for workspace-agnostic checks


# ── Requests / responses ───────────────────────────────────────────────────────

class AuthRequest(BaseModel):
    type: Literal["email", "github"]
    email: Optional[str] = None
    password: Optional[str] = None
    code: Optional[str] = None


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str


class TokenResponse(BaseModel):
    token: str


class RevokeSessionRequest(BaseModel):
    session_id: Optional[str] = None
    session_suffix: Optional[str] = None


class SessionListItem(BaseModel):
    session_suffix: str
    created_at: datetime
    last_used_timestamp: int
    user_agent: str = ""


class CreateWorkspaceRequest(BaseModel):
    name: str


class MeResponse(BaseModel):
    id: str
    name: str
    picture: Optional[str] = None
    workspaces: List[WorkspaceSummary]
