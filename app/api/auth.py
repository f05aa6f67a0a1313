from fastapi import APIRouter, Depends, HTTPException, Request

from app.dependencies import get_payload, get_user_repository
from app.errors import ValidationFailed
from app.security import (
    IdentityResolver,
    audit_auth_failure,
    get_current_user,
    get_identity_resolver,
    verify_password,
)
from app.validation import LOGIN_RULES, validate
from schemas.user import TokenResponse

router = APIRouter()


def _token_response(resolver: IdentityResolver, user_id: int) -> TokenResponse:
    return TokenResponse(token=resolver.issue(user_id), expires_in=resolver.expires_in)


@router.post("", response_model=TokenResponse, status_code=201)
async def login(
    request: Request,
    payload: dict = Depends(get_payload),
    users=Depends(get_user_repository),
    resolver=Depends(get_identity_resolver),
):
    errors = await validate(payload, LOGIN_RULES)
    if errors:
        raise ValidationFailed(errors)
    user = await users.find_by_email(payload["email"])
    if not user or not verify_password(payload["password"], user.password):
        audit_auth_failure(request, "bad_credentials", token_present=False)
        raise HTTPException(status_code=401, detail="Unauthorized")
    return _token_response(resolver, user.id)


@router.put("/current", response_model=TokenResponse)
async def refresh(user=Depends(get_current_user), resolver=Depends(get_identity_resolver)):
    return _token_response(resolver, user.id)
