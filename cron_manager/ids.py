"""Identifier generators and timestamp helpers."""

import secrets
import string
from datetime import datetime, timezone

NUMERIC = "1234567890"
ALPHANUMERIC = string.ascii_uppercase + string.ascii_lowercase + string.digits


def random_string(alphabet: str, size: int) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(size))


def generate_user_id() -> str:
    return random_string(NUMERIC, 16)


def generate_cron_id() -> str:
    return random_string(NUMERIC, 16)


def generate_workspace_id() -> str:
    return random_string(NUMERIC, 16)


def generate_session_secret() -> str:
    return random_string(ALPHANUMERIC, 32)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
