"""
News article store and the comment mutation protocol.

Comments are embedded in their article, so adding or removing one is a
read-modify-write cycle over the whole ``comments`` array:

    1. read the article
    2. compute the new array (append with max id + 1, or filter one id out)
    3. write the array back with a partial update
    4. return the updated article

A plain ``PATCH`` of ``comments`` is last-writer-wins. The first-class
``add_comment`` / ``remove_comment`` operations make step 3 conditional on the
``revision`` read in step 1 and restart the cycle when another writer got
there first, so concurrent comment writes are not lost.
"""
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

import database
from comments import append_comment, has_comment, without_comment
from errors import (
    NotFoundError,
    RevisionConflictError,
    StoreError,
    UnknownReferenceError,
    ValidationError,
)
from logger import logger
from users import user_exists

COMMENT_WRITE_RETRIES = int(os.getenv("COMMENT_WRITE_RETRIES", "3"))

WRITABLE_FIELDS = ("title", "body", "author_id", "comments")


def _news() -> Collection:
    if database.db is None:
        raise StoreError("Database not available")
    return database.db[database.NEWS]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _object_id(article_id: str) -> ObjectId:
    # a malformed id can never match a document
    if not ObjectId.is_valid(article_id):
        raise NotFoundError("News not found")
    return ObjectId(article_id)


def _revision_filter(revision: int) -> Dict[str, Any]:
    if revision == 0:
        # documents written before revisions existed have no field at all
        return {"$or": [{"revision": 0}, {"revision": {"$exists": False}}]}
    return {"revision": revision}


def to_article_out(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title"),
        "body": doc.get("body"),
        "author_id": doc.get("author_id"),
        "created_at": doc.get("created_at"),
        "comments": doc.get("comments") or [],
        "revision": doc.get("revision", 0),
    }


def _check_user(user_id: int, field: str) -> None:
    if not user_exists(user_id):
        raise UnknownReferenceError(f"{field} {user_id} does not reference an existing user")


# -------------------------------------------------------------------
# Article CRUD
# -------------------------------------------------------------------
def list_articles() -> List[Dict[str, Any]]:
    try:
        docs = list(_news().find({}).sort([("created_at", -1), ("_id", -1)]))
    except PyMongoError as e:
        logger.error("Error fetching news: %s", e)
        raise StoreError("Failed to fetch news") from e
    return [to_article_out(d) for d in docs]


def _find(oid: ObjectId) -> Dict[str, Any]:
    try:
        doc = _news().find_one({"_id": oid})
    except PyMongoError as e:
        logger.error("Error fetching news %s: %s", oid, e)
        raise StoreError("Failed to fetch news") from e
    if not doc:
        raise NotFoundError("News not found")
    return doc


def get_article(article_id: str) -> Dict[str, Any]:
    return to_article_out(_find(_object_id(article_id)))


def create_article(title: Optional[str], body: Optional[str], author_id: Optional[int]) -> Dict[str, Any]:
    if not title or not body or not author_id:
        raise ValidationError("Missing required fields: title, body, author_id")
    _check_user(author_id, "author_id")

    doc = {
        "title": title,
        "body": body,
        "author_id": author_id,
        "created_at": _now(),
        "comments": [],
        "revision": 0,
    }
    try:
        res = _news().insert_one(doc)
    except PyMongoError as e:
        logger.error("Error creating news: %s", e)
        raise StoreError("Failed to create news") from e
    logger.info("Created news %s by user %s", res.inserted_id, author_id)
    # read back so created_at has the precision the store keeps
    return to_article_out(_find(res.inserted_id))


def update_article(
    article_id: str,
    fields: Dict[str, Any],
    expected_revision: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Merge ``fields`` into the stored article.

    Writing ``comments`` bumps the revision. With ``expected_revision`` the
    write only applies if the stored revision still matches; otherwise
    RevisionConflictError is raised.
    """
    oid = _object_id(article_id)
    changes = {k: v for k, v in fields.items() if k in WRITABLE_FIELDS}
    for key, value in changes.items():
        if value is None:
            raise ValidationError(f"{key} cannot be null")
    if "title" in changes and not changes["title"]:
        raise ValidationError("title cannot be empty")
    if "body" in changes and not changes["body"]:
        raise ValidationError("body cannot be empty")

    if "author_id" in changes:
        _check_user(changes["author_id"], "author_id")
    if "comments" in changes:
        user_ids = {c.get("user_id") for c in changes["comments"]} - {None}
        for user_id in sorted(user_ids):
            _check_user(user_id, "user_id")

    query: Dict[str, Any] = {"_id": oid}
    if expected_revision is not None:
        query.update(_revision_filter(expected_revision))

    update: Dict[str, Any] = {}
    if changes:
        update["$set"] = changes
    if "comments" in changes:
        update["$inc"] = {"revision": 1}

    try:
        if update:
            doc = _news().find_one_and_update(query, update, return_document=ReturnDocument.AFTER)
        else:
            doc = _news().find_one(query)
    except PyMongoError as e:
        logger.error("Error updating news %s: %s", article_id, e)
        raise StoreError("Failed to update news") from e

    if not doc:
        if expected_revision is not None:
            current = _find(oid)
            raise RevisionConflictError(
                f"News was modified concurrently (expected revision {expected_revision}, "
                f"found {current.get('revision', 0)})"
            )
        raise NotFoundError("News not found")
    return to_article_out(doc)


def delete_article(article_id: str) -> Dict[str, Any]:
    oid = _object_id(article_id)
    try:
        res = _news().delete_one({"_id": oid})
    except PyMongoError as e:
        logger.error("Error deleting news %s: %s", article_id, e)
        raise StoreError("Failed to delete news") from e
    if res.deleted_count == 0:
        raise NotFoundError("News not found")
    logger.info("Deleted news %s", article_id)
    return {"success": True, "message": "News deleted successfully"}


# -------------------------------------------------------------------
# Comment mutation protocol
# -------------------------------------------------------------------
def load_comments(article_id: str) -> Tuple[List[Dict[str, Any]], int]:
    """Step 1: the current comments array and the revision it was read at."""
    doc = _find(_object_id(article_id))
    return list(doc.get("comments") or []), doc.get("revision", 0)


def write_comments(article_id: str, comments: List[Dict[str, Any]], expected_revision: int) -> Dict[str, Any]:
    """Step 3: replace the whole array if nobody else wrote it since ``expected_revision``."""
    return update_article(article_id, {"comments": comments}, expected_revision=expected_revision)


def _mutate_comments(
    article_id: str,
    compute: Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]],
) -> Dict[str, Any]:
    for attempt in range(1, COMMENT_WRITE_RETRIES + 1):
        comments, revision = load_comments(article_id)
        try:
            return write_comments(article_id, compute(comments), revision)
        except RevisionConflictError:
            logger.warning(
                "Comment write on news %s lost the race at revision %s (attempt %d/%d)",
                article_id, revision, attempt, COMMENT_WRITE_RETRIES,
            )
    raise RevisionConflictError("News was modified concurrently, please retry")


def add_comment(article_id: str, user_id: Optional[int], text: Optional[str]) -> Dict[str, Any]:
    if not user_id or not text or not text.strip():
        raise ValidationError("Missing required fields: user_id, text")
    _object_id(article_id)
    _check_user(user_id, "user_id")

    article = _mutate_comments(article_id, lambda comments: append_comment(comments, user_id, text, _now()))
    logger.info("Added comment %s to news %s", article["comments"][-1]["id"], article_id)
    return article


def remove_comment(article_id: str, comment_id: int) -> Dict[str, Any]:
    def compute(comments: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not has_comment(comments, comment_id):
            raise NotFoundError("Comment not found")
        return without_comment(comments, comment_id)

    article = _mutate_comments(article_id, compute)
    logger.info("Removed comment %s from news %s", comment_id, article_id)
    return article
