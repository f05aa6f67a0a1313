"""
Wire representation of resources.

A transformer turns one entity into a dict and embeds related resources the
client asked for with ``?include=``. Items are wrapped as ``{"data": ...}``;
paginated collections add ``meta.pagination``; embedded collections carry
``meta.total``.

Include syntax: comma separated names, each optionally followed by
``:limit(n)``, e.g. ``user,comments:limit(3)``. Names a transformer does not
offer are ignored.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import BaseModel

from app.repositories.base import Page, Repository
from schemas.feed import CommentResponse, PostResponse
from schemas.user import UserResponse

_INCLUDE = re.compile(r"^(?P<name>[A-Za-z_]+)(?::limit\((?P<limit>\d+)\))?$")


@dataclass(frozen=True)
class Include:
    name: str
    limit: Optional[int] = None


def parse_includes(raw: Optional[str]) -> dict[str, Include]:
    includes: dict[str, Include] = {}
    for part in (raw or "").split(","):
        match = _INCLUDE.match(part.strip())
        if not match:
            continue
        limit = match.group("limit")
        includes[match.group("name")] = Include(match.group("name"), int(limit) if limit else None)
    return includes


class Transformer:
    schema: type[BaseModel]
    available_includes: tuple[str, ...] = ()

    async def transform(self, entity, includes: Optional[dict[str, Include]] = None) -> dict[str, Any]:
        data = self.schema.model_validate(entity).model_dump(mode="json")
        for name, include in (includes or {}).items():
            if name in self.available_includes:
                data[name] = await getattr(self, f"include_{name}")(entity, include)
        return data

    async def item(self, entity, includes: Optional[dict[str, Include]] = None) -> dict[str, Any]:
        if entity is None:
            return {"data": None}
        return {"data": await self.transform(entity, includes)}

    async def collection(self, entities, total: Optional[int] = None) -> dict[str, Any]:
        data = [await self.transform(entity) for entity in entities]
        return {"data": data, "meta": {"total": len(data) if total is None else total}}

    async def paginate(
        self,
        page: Page,
        includes: Optional[dict[str, Include]] = None,
        url_for_page: Optional[Callable[[int], str]] = None,
    ) -> dict[str, Any]:
        links: dict[str, str] = {}
        if url_for_page is not None:
            if page.current_page > 1:
                links["previous"] = url_for_page(page.current_page - 1)
            if page.current_page < page.total_pages:
                links["next"] = url_for_page(page.current_page + 1)
        return {
            "data": [await self.transform(entity, includes) for entity in page.items],
            "meta": {
                "pagination": {
                    "total": page.total,
                    "count": page.count,
                    "per_page": page.per_page,
                    "current_page": page.current_page,
                    "total_pages": page.total_pages,
                    "links": links or [],
                }
            },
        }


class UserTransformer(Transformer):
    schema = UserResponse


class PostTransformer(Transformer):
    schema = PostResponse
    available_includes = ("user", "comments")

    def __init__(self, users: Repository, comments: Repository):
        self.users = users
        self.comments = comments

    async def include_user(self, post, include: Include):
        return await UserTransformer().item(await self.users.find(post.user_id))

    async def include_comments(self, post, include: Include):
        scope = {"post_id": post.id}
        comments = await self.comments.all(scope, limit=include.limit)
        total = await self.comments.count(scope)
        return await CommentTransformer(self.users, None).collection(comments, total)


class CommentTransformer(Transformer):
    schema = CommentResponse
    available_includes = ("user", "post")

    def __init__(self, users: Repository, posts: Optional[Repository]):
        self.users = users
        self.posts = posts

    async def include_user(self, comment, include: Include):
        return await UserTransformer().item(await self.users.find(comment.user_id))

    async def include_post(self, comment, include: Include):
        if self.posts is None:
            return {"data": None}
        post = await self.posts.find(comment.post_id)
        if post is None:
            return {"data": None}
        return {"data": PostResponse.model_validate(post).model_dump(mode="json")}
