import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from app.dependencies import (
    Pagination,
    get_includes,
    get_pagination,
    get_payload,
    get_post_repository,
    get_post_transformer,
)
from app.errors import ValidationFailed
from app.security import get_current_user, require_owner
from app.transformers import PostTransformer
from app.validation import POST_RULES, validate

router = APIRouter()
logger = logging.getLogger("postboard.api")


def page_url(request: Request):
    return lambda page: str(request.url.include_query_params(page=page))


@router.get("/posts")
async def list_posts(
    request: Request,
    pagination: Pagination = Depends(get_pagination),
    includes=Depends(get_includes),
    posts=Depends(get_post_repository),
    transformer: PostTransformer = Depends(get_post_transformer),
):
    page = await posts.paginate(pagination.page, pagination.per_page)
    return await transformer.paginate(page, includes, page_url(request))


@router.get("/user/posts")
async def list_my_posts(
    request: Request,
    pagination: Pagination = Depends(get_pagination),
    includes=Depends(get_includes),
    user=Depends(get_current_user),
    posts=Depends(get_post_repository),
    transformer: PostTransformer = Depends(get_post_transformer),
):
    page = await posts.where({"user_id": user.id}).paginate(pagination.page, pagination.per_page)
    return await transformer.paginate(page, includes, page_url(request))


@router.get("/posts/{post_id}")
async def show_post(
    post_id: int,
    includes=Depends(get_includes),
    posts=Depends(get_post_repository),
    transformer: PostTransformer = Depends(get_post_transformer),
):
    post = await posts.find(post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return await transformer.item(post, includes)


@router.post("/posts", status_code=201)
async def create_post(
    request: Request,
    payload: dict = Depends(get_payload),
    user=Depends(get_current_user),
    posts=Depends(get_post_repository),
):
    errors = await validate(payload, POST_RULES)
    if errors:
        raise ValidationFailed(errors)
    post = await posts.create({
        "title": payload["title"],
        "content": payload["content"],
        "user_id": user.id,
    })
    logger.info("post %s created by user %s", post.id, user.id)
    # 按协议返回 201，资源位置放在 Location 头里
    location = str(request.url_for("show_post", post_id=post.id))
    return Response(status_code=201, headers={"Location": location})


@router.put("/posts/{post_id}", status_code=204)
async def update_post(
    post_id: int,
    request: Request,
    payload: dict = Depends(get_payload),
    user=Depends(get_current_user),
    posts=Depends(get_post_repository),
):
    errors = await validate(payload, POST_RULES)
    if errors:
        raise ValidationFailed(errors)
    post = await posts.find(post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    # 不属于我的 forbidden
    require_owner(request, post, user)
    await posts.update(post_id, {"title": payload["title"], "content": payload["content"]})
    return Response(status_code=204)


@router.delete("/posts/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    request: Request,
    user=Depends(get_current_user),
    posts=Depends(get_post_repository),
):
    post = await posts.find(post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    require_owner(request, post, user)
    await posts.destroy(post_id)
    return Response(status_code=204)
