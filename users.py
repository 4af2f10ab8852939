"""
User store. Users are read-only after the startup seed.
"""
from typing import Any, Dict, List

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

import database
from errors import NotFoundError, StoreError
from logger import logger
from schemas import SEED_USERS


def _users() -> Collection:
    if database.db is None:
        raise StoreError("Database not available")
    return database.db[database.USERS]


def to_user_out(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {"id": doc["_id"], "name": doc.get("name"), "email": doc.get("email")}


def list_users() -> List[Dict[str, Any]]:
    try:
        docs = list(_users().find({}).sort("_id", 1))
    except PyMongoError as e:
        logger.error("Error fetching users: %s", e)
        raise StoreError("Failed to fetch users") from e
    return [to_user_out(d) for d in docs]


def get_user(user_id: int) -> Dict[str, Any]:
    try:
        doc = _users().find_one({"_id": user_id})
    except PyMongoError as e:
        logger.error("Error fetching user %s: %s", user_id, e)
        raise StoreError("Failed to fetch user") from e
    if not doc:
        raise NotFoundError("User not found")
    return to_user_out(doc)


def user_exists(user_id: int) -> bool:
    try:
        return _users().count_documents({"_id": user_id}, limit=1) > 0
    except PyMongoError as e:
        logger.error("Error checking user %s: %s", user_id, e)
        raise StoreError("Failed to fetch user") from e


def seed_users() -> int:
    """Insert the sample users if the collection is empty. Returns how many were inserted."""
    users = _users()
    try:
        count = users.count_documents({})
        if count:
            logger.info("Users already exist (%d users)", count)
            return 0
        users.insert_many([dict(u) for u in SEED_USERS])
    except PyMongoError as e:
        logger.error("Error seeding users: %s", e)
        raise StoreError("Failed to seed users") from e
    logger.info("Users seeded successfully (%d users)", len(SEED_USERS))
    return len(SEED_USERS)
