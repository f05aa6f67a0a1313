import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import ConflictError, EntityNotFound
from app.repositories.base import (
    CommentRepository,
    CriteriaLike,
    Page,
    PostRepository,
    Repository,
    UserRepository,
)
from models.feed import Comment, Post
from models.user import User

logger = logging.getLogger("postboard.repository")


class SqlRepository(Repository):
    model: Any = None

    def __init__(self, session: AsyncSession, criteria=None):
        super().__init__(criteria)
        self.session = session

    def _filtered(self, stmt, criteria: CriteriaLike = None):
        for name, value in self._scope(criteria).items():
            stmt = stmt.where(getattr(self.model, name) == value)
        if self.soft_deletes:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return stmt

    def _ordered(self, stmt):
        # 最新的在前，同一秒内按 id 倒序
        return stmt.order_by(self.model.created_at.desc(), self.model.id.desc())

    def _columns(self, attributes: Mapping[str, Any]) -> dict[str, Any]:
        columns = self.model.__table__.columns
        return {k: v for k, v in attributes.items() if k in columns and k != "id"}

    async def _commit(self):
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            field = self.unique_fields[0] if self.unique_fields else "id"
            logger.warning("%s write rejected by storage: %s", self.model.__name__, exc.orig)
            raise ConflictError(field) from exc

    async def find(self, entity_id: int) -> Optional[Any]:
        stmt = self._filtered(select(self.model).where(self.model.id == entity_id))
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def all(self, criteria: CriteriaLike = None, limit: Optional[int] = None) -> list:
        stmt = self._ordered(self._filtered(select(self.model), criteria))
        if limit is not None:
            stmt = stmt.limit(limit)
        return list((await self.session.execute(stmt)).scalars().all())

    async def count(self, criteria: CriteriaLike = None) -> int:
        stmt = self._filtered(select(func.count()).select_from(self.model), criteria)
        return (await self.session.execute(stmt)).scalar_one()

    async def paginate(
        self,
        page: int = 1,
        per_page: int = settings.PAGE_SIZE,
        criteria: CriteriaLike = None,
    ) -> Page:
        page = max(int(page), 1)
        total = await self.count(criteria)
        stmt = (
            self._ordered(self._filtered(select(self.model), criteria))
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        items = list((await self.session.execute(stmt)).scalars().all())
        return Page(items=items, total=total, per_page=per_page, current_page=page)

    async def create(self, attributes: Mapping[str, Any]):
        entity = self.model(**self._columns(attributes))
        self.session.add(entity)
        await self._commit()
        await self.session.refresh(entity)
        logger.info("%s %s created", self.model.__name__, entity.id)
        return entity

    async def update(self, entity_id: int, attributes: Mapping[str, Any]):
        entity = await self.find(entity_id)
        if entity is None:
            raise EntityNotFound(self.model.__name__, entity_id)
        for name, value in self._columns(attributes).items():
            if name in self.immutable_fields:
                continue
            setattr(entity, name, value)
        await self._commit()
        await self.session.refresh(entity)
        logger.info("%s %s updated", self.model.__name__, entity_id)
        return entity

    async def destroy(self, entity_id: int) -> None:
        entity = await self.find(entity_id)
        if entity is None:
            raise EntityNotFound(self.model.__name__, entity_id)
        if self.soft_deletes:
            entity.deleted_at = datetime.now(timezone.utc)
        else:
            await self.session.delete(entity)
        await self._commit()
        logger.info("%s %s deleted", self.model.__name__, entity_id)


class SqlUserRepository(UserRepository, SqlRepository):
    model = User


class SqlPostRepository(PostRepository, SqlRepository):
    model = Post


class SqlCommentRepository(CommentRepository, SqlRepository):
    model = Comment
