from dataclasses import dataclass

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.repositories.sql import SqlCommentRepository, SqlPostRepository, SqlUserRepository
from app.transformers import CommentTransformer, Include, PostTransformer, parse_includes


async def get_user_repository(db: AsyncSession = Depends(get_db)):
    return SqlUserRepository(db)


async def get_post_repository(db: AsyncSession = Depends(get_db)):
    return SqlPostRepository(db)


async def get_comment_repository(db: AsyncSession = Depends(get_db)):
    return SqlCommentRepository(db)


@dataclass(frozen=True)
class Pagination:
    page: int
    per_page: int


def get_pagination(
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> Pagination:
    return Pagination(page=page, per_page=per_page)


def get_includes(include: str | None = Query(None)) -> dict[str, Include]:
    return parse_includes(include)


async def get_payload(request: Request) -> dict:
    """JSON object body; anything else counts as an empty payload."""
    body = await request.body()
    if not body:
        return {}
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


async def get_post_transformer(
    users=Depends(get_user_repository),
    comments=Depends(get_comment_repository),
) -> PostTransformer:
    return PostTransformer(users, comments)


async def get_comment_transformer(
    users=Depends(get_user_repository),
    posts=Depends(get_post_repository),
) -> CommentTransformer:
    return CommentTransformer(users, posts)
