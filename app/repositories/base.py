"""
Repository contract shared by every resource.

Handlers only talk to these interfaces; the SQLAlchemy implementation lives in
``app.repositories.sql`` and tests swap in an in-memory one.
"""
import copy
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Mapping, Optional, TypeVar, Union

from app.config import settings

T = TypeVar("T")


@dataclass(frozen=True)
class Criteria:
    """Conjunction of ``field == value`` filters."""

    conditions: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, value: "Criteria | Mapping[str, Any] | None" = None) -> "Criteria":
        if isinstance(value, Criteria):
            return value
        items = dict(value or {})
        return cls(tuple(sorted(items.items(), key=lambda item: item[0])))

    def merge(self, other: "Criteria | Mapping[str, Any] | None") -> "Criteria":
        merged = dict(self.conditions)
        merged.update(Criteria.of(other).conditions)
        return Criteria.of(merged)

    def items(self):
        return iter(self.conditions)

    def matches(self, entity) -> bool:
        return all(getattr(entity, name, None) == value for name, value in self.conditions)

    def __bool__(self) -> bool:
        return bool(self.conditions)


CriteriaLike = Optional[Union[Criteria, Mapping[str, Any]]]


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    per_page: int
    current_page: int

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def total_pages(self) -> int:
        if self.per_page <= 0:
            return 0
        return math.ceil(self.total / self.per_page)


class Repository(ABC, Generic[T]):
    """Data access for one entity type.

    ``find`` reports absence with ``None``; ``update`` and ``destroy`` raise
    ``EntityNotFound``. ``where`` never mutates the receiver, it returns a
    scoped copy whose reads only see rows matching all criteria.
    """

    soft_deletes = False
    unique_fields: tuple[str, ...] = ()
    immutable_fields: tuple[str, ...] = ()

    def __init__(self, criteria: Optional[Criteria] = None):
        self.criteria = criteria or Criteria()

    def where(self, criteria: "Criteria | Mapping[str, Any]") -> "Repository[T]":
        scoped = copy.copy(self)
        scoped.criteria = self.criteria.merge(criteria)
        return scoped

    def _scope(self, criteria: CriteriaLike = None) -> Criteria:
        return self.criteria.merge(criteria)

    async def first(self, criteria: CriteriaLike = None) -> Optional[T]:
        rows = await self.all(criteria, limit=1)
        return rows[0] if rows else None

    @abstractmethod
    async def find(self, entity_id: int) -> Optional[T]:
        ...

    @abstractmethod
    async def all(self, criteria: CriteriaLike = None, limit: Optional[int] = None) -> list[T]:
        ...

    @abstractmethod
    async def count(self, criteria: CriteriaLike = None) -> int:
        ...

    @abstractmethod
    async def paginate(
        self,
        page: int = 1,
        per_page: int = settings.PAGE_SIZE,
        criteria: CriteriaLike = None,
    ) -> Page[T]:
        ...

    @abstractmethod
    async def create(self, attributes: Mapping[str, Any]) -> T:
        ...

    @abstractmethod
    async def update(self, entity_id: int, attributes: Mapping[str, Any]) -> T:
        ...

    @abstractmethod
    async def destroy(self, entity_id: int) -> None:
        ...


class UserRepository(Repository[T]):
    soft_deletes = True
    unique_fields = ("email",)

    async def find_by_email(self, email: str) -> Optional[T]:
        return await self.first({"email": email})


class PostRepository(Repository[T]):
    immutable_fields = ("user_id",)


class CommentRepository(Repository[T]):
    immutable_fields = ("post_id", "user_id")
