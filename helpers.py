"""
Form validation and display helpers used by the client.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Union

MIN_BODY_LENGTH = 20


# Validation utilities
def _title_error(title: Optional[str]) -> Optional[str]:
    if not title or not title.strip():
        return "Title cannot be empty"
    return None


def _body_error(body: Optional[str]) -> Optional[str]:
    if not body or not body.strip():
        return "Content cannot be empty"
    if len(body.strip()) < MIN_BODY_LENGTH:
        return f"Content must be at least {MIN_BODY_LENGTH} characters"
    return None


def validate_news(title: Optional[str], body: Optional[str]) -> Tuple[bool, Dict[str, str]]:
    return validate_news_fields({"title": title, "body": body})


def validate_news_fields(fields: Dict[str, Any]) -> Tuple[bool, Dict[str, str]]:
    """Validate only the title/body keys present in ``fields`` (for partial edits)."""
    checks = {"title": _title_error, "body": _body_error}
    errors: Dict[str, str] = {}
    for key, check in checks.items():
        if key in fields:
            error = check(fields[key])
            if error:
                errors[key] = error
    return not errors, errors


def validate_comment(text: Optional[str]) -> Tuple[bool, Optional[str]]:
    if not text or not text.strip():
        return False, "Comment cannot be empty"
    return True, None


# Date formatting
def _parse(value: Union[str, datetime]) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        # the API returns naive UTC timestamps
        value = value.replace(tzinfo=timezone.utc)
    return value


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}{'s' if n > 1 else ''} ago"


def format_date(value: Union[str, datetime], now: Optional[datetime] = None) -> str:
    date = _parse(value)
    now = _parse(now) if now else datetime.now(timezone.utc)

    secs = int((now - date).total_seconds())
    mins = secs // 60
    hours = mins // 60
    days = hours // 24

    if secs < 60:
        return "Just now"
    if mins < 60:
        return _plural(mins, "minute")
    if hours < 24:
        return _plural(hours, "hour")
    if days < 7:
        return _plural(days, "day")
    return f"{date:%b} {date.day}, {date.year}"


# Text utilities
def truncate_text(text: str, max_length: int = 150) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length].strip() + "..."
