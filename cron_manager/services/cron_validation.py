"""Validation of cron job definitions. Pure functions, no I/O."""

import re
from typing import Optional
from urllib.parse import urlsplit

from ..schemas.cron import CronOptionInput

ALLOWED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

# AWS-style cron field tokens
# https://docs.aws.amazon.com/eventbridge/latest/userguide/eb-scheduled-rule-pattern.html
_FIELD_PATTERNS = (
    re.compile(r"\d+", re.ASCII),
    re.compile(r"\d+-\d+", re.ASCII),
    re.compile(r"\d+-\d+/\d", re.ASCII),
    re.compile(r"\*/\d+", re.ASCII),
)


def is_valid_cron_expression(expression: str) -> bool:
    """``cron(...)`` wrapping exactly six single-space separated fields."""
    if not expression.startswith("cron(") or not expression.endswith(")"):
        return False

    fields = expression[5:-1].split(" ")
    if len(fields) != 6:
        return False

    for field in fields:
        if field in ("*", "?"):
            continue
        if any(pattern.fullmatch(field) for pattern in _FIELD_PATTERNS):
            continue
        return False
    return True


def _is_absolute_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)


def validate_cron_option(option: Optional[CronOptionInput]) -> Optional[str]:
    """Return the message of the first violated rule, or ``None`` when valid."""
    if option is None:
        return "Option is required"

    if len(option.name or "") < 3:
        return "Name must be at least 3 characters"

    if option.schedule is None:
        return "Schedule is required"

    if not option.schedule.expression:
        return "Cron expression is required"

    if not is_valid_cron_expression(option.schedule.expression):
        return "Invalid cron expression"

    action = option.action
    if action is None:
        return "Action is required"

    if action.type != "fetch":
        return "Invalid action type"

    if not action.url:
        return "URL is required"

    if not _is_absolute_url(action.url):
        return "Invalid URL"

    if not action.method:
        return "Method is required"

    if action.method not in ALLOWED_METHODS:
        return "Invalid method"

    if action.headers and not all(k.isascii() and v.isascii() for k, v in action.headers.items()):
        return "Invalid headers"

    return None
