import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
import news
import users
from errors import PortalError, StoreError
from logger import logger, setup_logging
from schemas import Comment, NewsArticle, User


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if database.db is not None:
        logger.info("MongoDB configured (database: %s)", database.db.name)
        users.seed_users()
    else:
        logger.warning("DATABASE_URL not set - running without database")
    logger.info("News Portal API ready")
    yield
    database.close()
    logger.info("MongoDB connection closed")


app = FastAPI(title="News Portal API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

AVAILABLE_ROUTES = [
    "GET /",
    "GET /test",
    "GET /users",
    "GET /users/:id",
    "GET /news",
    "GET /news/:id",
    "POST /news",
    "PATCH /news/:id",
    "DELETE /news/:id",
    "POST /news/:id/comments",
    "DELETE /news/:id/comments/:commentId",
]


# -------------------------------------------------------------------
# Models
# -------------------------------------------------------------------
class NewsCreateIn(BaseModel):
    # presence is checked by the store so a missing field is a 400, not a 422
    title: Optional[str] = None
    body: Optional[str] = None
    author_id: Optional[int] = None


class NewsUpdateIn(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None
    author_id: Optional[int] = None
    comments: Optional[List[Comment]] = None
    revision: Optional[int] = None


class CommentCreateIn(BaseModel):
    user_id: Optional[int] = None
    text: Optional[str] = None


class DeleteOut(BaseModel):
    success: bool
    message: str


# -------------------------------------------------------------------
# Error handling
# -------------------------------------------------------------------
@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    err = StoreError(str(exc))
    return JSONResponse(status_code=err.status_code, content=err.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for e in exc.errors():
        loc = ".".join(str(p) for p in e.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {e.get('msg')}" if loc else str(e.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Bad Request", "message": "; ".join(problems)},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # the app never raises 404/405 itself, so these only come from routing
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "error": "Not Found",
                "message": f"Route {request.method} {request.url.path} not found",
                "availableRoutes": AVAILABLE_ROUTES,
            },
        )
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


# -------------------------------------------------------------------
# Health
# -------------------------------------------------------------------
@app.get("/")
def root():
    return {
        "message": "News Portal API is running!",
        "status": "healthy",
        "database": "MongoDB" if database.db is not None else "Not configured",
        "endpoints": {"users": "/users", "news": "/news"},
    }


@app.head("/")
def root_head():
    # Explicit HEAD route for health checks
    return {}


@app.get("/test")
def test_database():
    return database.connection_report()


# -------------------------------------------------------------------
# Users
# -------------------------------------------------------------------
@app.get("/users", response_model=List[User])
def list_users():
    return users.list_users()


@app.get("/users/{user_id}", response_model=User)
def get_user(user_id: int):
    return users.get_user(user_id)


# -------------------------------------------------------------------
# News
# -------------------------------------------------------------------
@app.get("/news", response_model=List[NewsArticle])
def list_news():
    return news.list_articles()


@app.get("/news/{news_id}", response_model=NewsArticle)
def get_news(news_id: str):
    return news.get_article(news_id)


@app.post("/news", response_model=NewsArticle, status_code=status.HTTP_201_CREATED)
def create_news(data: NewsCreateIn):
    return news.create_article(data.title, data.body, data.author_id)


@app.patch("/news/{news_id}", response_model=NewsArticle)
def update_news(news_id: str, data: NewsUpdateIn):
    fields = data.model_dump(exclude_unset=True, exclude={"revision"})
    return news.update_article(news_id, fields, expected_revision=data.revision)


@app.delete("/news/{news_id}", response_model=DeleteOut)
def delete_news(news_id: str):
    return news.delete_article(news_id)


# -------------------------------------------------------------------
# Comments
# -------------------------------------------------------------------
@app.post("/news/{news_id}/comments", response_model=NewsArticle, status_code=status.HTTP_201_CREATED)
def add_comment(news_id: str, data: CommentCreateIn):
    return news.add_comment(news_id, data.user_id, data.text)


@app.delete("/news/{news_id}/comments/{comment_id}", response_model=NewsArticle)
def delete_comment(news_id: str, comment_id: int):
    return news.remove_comment(news_id, comment_id)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
