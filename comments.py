"""
Pure helpers for the embedded comments array of a news article.

Shared by the server store and the API client, which computes the new
array itself before PATCHing it back.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def next_comment_id(comments: List[Dict[str, Any]]) -> int:
    # ids are scoped to one article: max + 1, starting at 1
    return max((int(c.get("id") or 0) for c in comments), default=0) + 1


def append_comment(
    comments: List[Dict[str, Any]],
    user_id: int,
    text: str,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    comment = {
        "id": next_comment_id(comments),
        "user_id": user_id,
        "text": text,
        "created_at": now or datetime.now(timezone.utc),
    }
    return [*comments, comment]


def without_comment(comments: List[Dict[str, Any]], comment_id: int) -> List[Dict[str, Any]]:
    return [c for c in comments if c.get("id") != comment_id]


def has_comment(comments: List[Dict[str, Any]], comment_id: int) -> bool:
    return any(c.get("id") == comment_id for c in comments)
