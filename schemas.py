"""
Database Schemas for the News Portal

Each Pydantic model describes the documents of one MongoDB collection.
Comments have no collection of their own; they live embedded in a news
article's ``comments`` array.
"""
from datetime import datetime
from typing import List

from pydantic import BaseModel, EmailStr, Field


class User(BaseModel):
    """
    Collection: "users" (stored with the integer id as ``_id``)
    """
    id: int = Field(..., description="Integer user id")
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Contact email address")


class Comment(BaseModel):
    """
    Embedded in "news".comments; ``id`` is unique within its article only.
    """
    id: int
    user_id: int
    text: str
    created_at: datetime


class NewsArticle(BaseModel):
    """
    Collection: "news"
    """
    id: str = Field(..., description="ObjectId as a hex string")
    title: str
    body: str
    author_id: int
    created_at: datetime
    comments: List[Comment] = []
    revision: int = Field(0, description="Bumped on every comments write")


SEED_USERS = [
    {"_id": 1, "name": "John Doe", "email": "john@example.com"},
    {"_id": 2, "name": "Jane Smith", "email": "jane@example.com"},
    {"_id": 3, "name": "Bob Johnson", "email": "bob@example.com"},
    {"_id": 4, "name": "Alice Williams", "email": "alice@example.com"},
    {"_id": 5, "name": "Charlie Brown", "email": "charlie@example.com"},
]
