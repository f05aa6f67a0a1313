import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from app.api.posts import page_url
from app.dependencies import Pagination, get_pagination, get_payload, get_user_repository
from app.errors import ValidationFailed
from app.security import (
    IdentityResolver,
    get_current_user,
    get_identity_resolver,
    hash_password,
    verify_password,
)
from app.transformers import UserTransformer
from app.validation import (
    PASSWORD_CHANGE_RULES,
    USER_CREATE_RULES,
    USER_PATCH_RULES,
    is_blank,
    validate,
)

router = APIRouter()
logger = logging.getLogger("postboard.api")


@router.get("/users")
async def list_users(
    request: Request,
    pagination: Pagination = Depends(get_pagination),
    users=Depends(get_user_repository),
):
    page = await users.paginate(pagination.page, pagination.per_page)
    return await UserTransformer().paginate(page, url_for_page=page_url(request))


@router.get("/users/{user_id}")
async def show_user(user_id: int, users=Depends(get_user_repository)):
    user = await users.find(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return await UserTransformer().item(user)


@router.post("/users")
async def register(
    payload: dict = Depends(get_payload),
    users=Depends(get_user_repository),
    resolver: IdentityResolver = Depends(get_identity_resolver),
):
    errors = await validate(payload, USER_CREATE_RULES, users)
    if errors:
        raise ValidationFailed(errors)
    user = await users.create({
        "email": payload["email"],
        "password": hash_password(payload["password"]),
    })
    logger.info("user %s registered", user.id)
    return {"token": resolver.issue(user.id)}


@router.get("/user")
async def show_me(user=Depends(get_current_user)):
    return await UserTransformer().item(user)


@router.patch("/user")
async def update_me(
    payload: dict = Depends(get_payload),
    user=Depends(get_current_user),
    users=Depends(get_user_repository),
):
    errors = await validate(payload, USER_PATCH_RULES)
    if errors:
        raise ValidationFailed(errors)
    # 空值字段不更新
    attributes = {k: payload[k] for k in ("name", "avatar") if not is_blank(payload.get(k))}
    if attributes:
        user = await users.update(user.id, attributes)
    return await UserTransformer().item(user)


@router.put("/user/password", status_code=204)
async def change_password(
    request: Request,
    payload: dict = Depends(get_payload),
    user=Depends(get_current_user),
    users=Depends(get_user_repository),
):
    errors = await validate(payload, PASSWORD_CHANGE_RULES)
    if errors:
        raise ValidationFailed(errors)
    if not verify_password(payload["old_password"], user.password):
        logger.warning("password change rejected for user %s: old password mismatch", user.id)
        raise ValidationFailed({"old_password": ["The old password is incorrect."]})
    await users.update(user.id, {"password": hash_password(payload["password"])})
    logger.info("user %s changed password", user.id)
    return Response(status_code=204)
