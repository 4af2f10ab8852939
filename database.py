"""
MongoDB connection for the News Portal API.

Exposes a module-level ``db`` handle. When DATABASE_URL is not configured the
handle is ``None`` and the stores report the database as unavailable.
"""
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "news-portal")

USERS = "users"
NEWS = "news"

_client: Optional[MongoClient] = None
db: Optional[Database] = None

if DATABASE_URL:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]


def safe_url(url: Optional[str]) -> Optional[str]:
    """The connection string with its credentials masked."""
    if not url or "@" not in url:
        return url
    scheme, sep, rest = url.rpartition("://")
    return f"{scheme}{sep}***{rest[rest.rfind('@'):]}"


def connection_report() -> Dict[str, Any]:
    """Connectivity diagnostics: whether the database is configured and answering."""
    report: Dict[str, Any] = {
        "backend": "Running",
        "database": "Not Available",
        "database_url": safe_url(DATABASE_URL) if DATABASE_URL else "Not Set",
        "database_name": DATABASE_NAME,
        "connection_status": "Not Connected",
        "collections": [],
    }
    if db is None:
        return report

    report["database_name"] = db.name
    try:
        report["collections"] = sorted(db.list_collection_names())[:10]
    except PyMongoError as e:
        report["database"] = f"Connected but Error: {str(e)[:50]}"
        return report
    report["database"] = "Connected & Working"
    report["connection_status"] = "Connected"
    return report


def close() -> None:
    global _client, db
    if _client is not None:
        _client.close()
    _client = None
    db = None
