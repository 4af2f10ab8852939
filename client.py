"""
Python client for the News Portal API, plus the client-local session.

``NewsPortalClient`` wraps every endpoint. ``add_comment`` / ``delete_comment``
follow the original client flow (GET the article, compute the new comments
array, PATCH it back) and send the revision they read, so a concurrent writer
makes them fail with a 409 instead of silently dropping a comment.
``post_comment`` / ``remove_comment`` use the server-side comment endpoints.

Article and comment forms are validated before anything is sent; invalid
input raises FormValidationError without a request.
"""
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests

from comments import append_comment, without_comment
from helpers import validate_comment, validate_news, validate_news_fields
from logger import logger

API_URL = os.getenv("NEWS_PORTAL_API_URL", "http://localhost:8000")
SESSION_KEY = "newsportal_user"
DEFAULT_STORAGE = Path.home() / ".news_portal" / "storage.json"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class FormValidationError(ApiError):
    """Raised client-side; ``errors`` maps each invalid field to its message."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__(400, "; ".join(errors.values()))
        self.errors = errors


def _check_comment(text: Optional[str]) -> str:
    ok, error = validate_comment(text)
    if not ok:
        raise FormValidationError({"text": error})
    return text.strip()


class NewsPortalClient:
    def __init__(self, base_url: str = API_URL, http: Any = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        # anything with requests-style get/post/patch/delete works here
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout
        # other transports (e.g. an in-process test client) carry their own timeout
        self.request_kwargs: Dict[str, Any] = (
            {"timeout": timeout} if isinstance(self.http, requests.Session) else {}
        )

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = getattr(self.http, method)(url, **self.request_kwargs, **kwargs)
        except requests.RequestException as e:
            logger.error("Request %s %s failed: %s", method.upper(), url, e)
            raise ApiError(0, f"Failed to reach backend. Make sure it is running on {self.base_url}") from e

        if response.status_code >= 400:
            try:
                payload = response.json()
                message = payload.get("message") or payload.get("error")
            except ValueError:
                message = None
            raise ApiError(response.status_code, message or f"HTTP error! status: {response.status_code}")
        return response.json()

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------
    def get_users(self) -> List[Dict[str, Any]]:
        return self._request("get", "/users")

    def get_user(self, user_id: int) -> Dict[str, Any]:
        return self._request("get", f"/users/{user_id}")

    # -------------------------------------------------------------------
    # News
    # -------------------------------------------------------------------
    def get_all_news(self) -> List[Dict[str, Any]]:
        return self._request("get", "/news")

    def get_news(self, news_id: str) -> Dict[str, Any]:
        return self._request("get", f"/news/{news_id}")

    def create_news(self, title: str, body: str, author_id: int) -> Dict[str, Any]:
        ok, errors = validate_news(title, body)
        if not ok:
            raise FormValidationError(errors)
        payload = {"title": title.strip(), "body": body.strip(), "author_id": author_id}
        data = self._request("post", "/news", json=payload)
        logger.info("Created news %s", data["id"])
        return data

    def update_news(self, news_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        ok, errors = validate_news_fields(fields)
        if not ok:
            raise FormValidationError(errors)
        fields = dict(fields)
        for key in ("title", "body"):
            if key in fields:
                fields[key] = fields[key].strip()
        return self._request("patch", f"/news/{news_id}", json=fields)

    def delete_news(self, news_id: str) -> Dict[str, Any]:
        return self._request("delete", f"/news/{news_id}")

    # -------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------
    def add_comment(self, news_id: str, user_id: int, text: str) -> Dict[str, Any]:
        text = _check_comment(text)
        article = self.get_news(news_id)
        now = datetime.now(timezone.utc)
        updated = append_comment(article.get("comments") or [], user_id, text, now)
        updated[-1]["created_at"] = now.isoformat()
        return self.update_news(news_id, {"comments": updated, "revision": article.get("revision", 0)})

    def delete_comment(self, news_id: str, comment_id: int) -> Dict[str, Any]:
        article = self.get_news(news_id)
        updated = without_comment(article.get("comments") or [], comment_id)
        return self.update_news(news_id, {"comments": updated, "revision": article.get("revision", 0)})

    def post_comment(self, news_id: str, user_id: int, text: str) -> Dict[str, Any]:
        text = _check_comment(text)
        return self._request("post", f"/news/{news_id}/comments", json={"user_id": user_id, "text": text})

    def remove_comment(self, news_id: str, comment_id: int) -> Dict[str, Any]:
        return self._request("delete", f"/news/{news_id}/comments/{comment_id}")


class Session:
    """
    The user currently "logged in" on this machine.

    Nothing is authenticated: the selected user is stored as JSON under a
    fixed key in a local storage file and restored on the next start.
    """

    def __init__(self, storage_path: Union[str, Path] = DEFAULT_STORAGE):
        self.storage_path = Path(storage_path)
        self.user: Optional[Dict[str, Any]] = None

    def __enter__(self) -> "Session":
        self.restore()
        return self

    def __exit__(self, *exc) -> None:
        self.user = None

    def _read_storage(self) -> Dict[str, Any]:
        if not self.storage_path.exists():
            return {}
        try:
            data = json.loads(self.storage_path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as e:
            logger.error("Error reading session storage: %s", e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_storage(self, data: Dict[str, Any]) -> None:
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.storage_path.write_text(json.dumps(data), encoding="utf-8")

    def restore(self) -> Optional[Dict[str, Any]]:
        storage = self._read_storage()
        raw = storage.get(SESSION_KEY)
        self.user = None
        if raw is not None:
            try:
                user = json.loads(raw)
                if not isinstance(user, dict) or "id" not in user:
                    raise ValueError("stored user has no id")
                self.user = user
            except ValueError as e:
                logger.error("Error parsing stored user: %s", e)
                storage.pop(SESSION_KEY, None)
                self._write_storage(storage)
        return self.user

    def login(self, user: Dict[str, Any]) -> None:
        storage = self._read_storage()
        storage[SESSION_KEY] = json.dumps(user)
        self._write_storage(storage)
        self.user = user

    def logout(self) -> None:
        storage = self._read_storage()
        if SESSION_KEY in storage:
            del storage[SESSION_KEY]
            self._write_storage(storage)
        self.user = None

    @property
    def user_id(self) -> Optional[int]:
        return self.user["id"] if self.user else None

    def can_modify(self, resource: Dict[str, Any]) -> bool:
        """True if the session user authored ``resource`` (an article or a comment)."""
        if self.user_id is None:
            return False
        owner = resource["author_id"] if "author_id" in resource else resource.get("user_id")
        return owner == self.user_id
