from fastapi import APIRouter, Depends, HTTPException, Request, Response

from app.api.posts import page_url
from app.dependencies import (
    Pagination,
    get_comment_repository,
    get_comment_transformer,
    get_includes,
    get_pagination,
    get_payload,
    get_post_repository,
    get_user_repository,
)
from app.errors import ValidationFailed
from app.security import get_current_user, require_owner
from app.transformers import CommentTransformer
from app.validation import COMMENT_CREATE_RULES, COMMENT_UPDATE_RULES, validate

router = APIRouter()


async def _load_post(posts, post_id: int):
    post = await posts.find(post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("/posts/{post_id}/comments")
async def list_comments(
    post_id: int,
    request: Request,
    pagination: Pagination = Depends(get_pagination),
    includes=Depends(get_includes),
    posts=Depends(get_post_repository),
    comments=Depends(get_comment_repository),
    transformer: CommentTransformer = Depends(get_comment_transformer),
):
    await _load_post(posts, post_id)
    page = await comments.where({"post_id": post_id}).paginate(pagination.page, pagination.per_page)
    return await transformer.paginate(page, includes, page_url(request))


@router.post("/posts/{post_id}/comments", status_code=201)
async def create_comment(
    post_id: int,
    payload: dict = Depends(get_payload),
    includes=Depends(get_includes),
    user=Depends(get_current_user),
    users=Depends(get_user_repository),
    posts=Depends(get_post_repository),
    comments=Depends(get_comment_repository),
    transformer: CommentTransformer = Depends(get_comment_transformer),
):
    errors = await validate(payload, COMMENT_CREATE_RULES)
    if errors:
        raise ValidationFailed(errors)
    reply_user_id = int(payload.get("reply_user_id") or 0)
    if reply_user_id and not await users.find(reply_user_id):
        raise ValidationFailed({"reply_user_id": ["The selected reply user id is invalid."]})
    await _load_post(posts, post_id)
    comment = await comments.create({
        "post_id": post_id,
        "user_id": user.id,
        "reply_user_id": reply_user_id,
        "content": payload["content"],
    })
    return await transformer.item(comment, includes)


@router.put("/posts/{post_id}/comments/{comment_id}", status_code=204)
async def update_comment(
    post_id: int,
    comment_id: int,
    request: Request,
    payload: dict = Depends(get_payload),
    user=Depends(get_current_user),
    comments=Depends(get_comment_repository),
):
    errors = await validate(payload, COMMENT_UPDATE_RULES)
    if errors:
        raise ValidationFailed(errors)
    comment = await comments.where({"post_id": post_id}).find(comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    require_owner(request, comment, user)
    await comments.update(comment_id, {"content": payload["content"]})
    return Response(status_code=204)


@router.delete("/posts/{post_id}/comments/{comment_id}", status_code=204)
async def delete_comment(
    post_id: int,
    comment_id: int,
    request: Request,
    user=Depends(get_current_user),
    comments=Depends(get_comment_repository),
):
    comment = await comments.where({"post_id": post_id}).find(comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    require_owner(request, comment, user)
    await comments.destroy(comment_id)
    return Response(status_code=204)
