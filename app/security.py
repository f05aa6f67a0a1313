import logging
from datetime import datetime, timedelta, timezone
from typing import Protocol

import bcrypt
from fastapi import Depends, HTTPException, Request
from jose import ExpiredSignatureError, JWTError, jwt

from app.config import settings
from app.dependencies import get_user_repository
from app.errors import AuthenticationError
from app.repositories.base import UserRepository


def _split_header_names(raw_value: str, fallback: list[str]) -> list[str]:
    names = [item.strip().lower() for item in (raw_value or "").split(",") if item.strip()]
    return names or fallback


TOKEN_HEADER_NAMES = _split_header_names(
    settings.AUTH_TOKEN_HEADERS,
    ["authorization", "x-auth-token"],
)
logger = logging.getLogger("postboard.security")


def audit_auth_failure(
    request: Request | None,
    reason: str,
    *,
    user_id: int | None = None,
    token_present: bool | None = None,
) -> None:
    if not request:
        logger.warning("AUTH_DENY reason=%s", reason)
        return
    path = getattr(getattr(request, "url", None), "path", "-")
    method = getattr(request, "method", "-")
    client = getattr(request, "client", None)
    ip = getattr(client, "host", "-") if client else "-"
    if token_present is None:
        token_present = bool(_extract_auth_token(request))
    logger.warning(
        "AUTH_DENY reason=%s method=%s path=%s ip=%s user=%s token_present=%s",
        reason,
        method,
        path,
        ip,
        user_id if user_id is not None else "-",
        int(bool(token_present)),
    )


def _extract_auth_token(request: Request) -> str | None:
    if not request:
        return None
    headers = getattr(request, "headers", None)
    token = None
    if headers:
        for name in TOKEN_HEADER_NAMES:
            value = headers.get(name)
            if not value:
                continue
            raw = value.strip()
            if not raw:
                continue
            if name == "authorization":
                if raw.lower().startswith("bearer "):
                    raw = raw.split(" ", 1)[1].strip()
                elif " " in raw:
                    # 仅支持 Bearer 格式，其他 scheme 直接跳过
                    continue
            token = raw
            if token:
                break
    if not token:
        query = getattr(request, "query_params", None)
        if query:
            token = query.get("token")
            if token:
                token = token.strip()
    return token or None


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def _password_bytes(plain_password: str) -> bytes:
    # bcrypt 只使用前 72 字节
    return plain_password.encode("utf-8")[:72]


def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(plain_password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

class IdentityResolver(Protocol):
    expires_in: int

    def issue(self, user_id: int) -> str:
        ...

    def resolve(self, credential: str | None) -> int:
        """Return the user id carried by ``credential`` or raise AuthenticationError."""
        ...


class JwtIdentityResolver:
    """Bearer tokens signed with a shared secret; the user id lives in ``sub``."""

    def __init__(
        self,
        secret: str | None = None,
        algorithm: str | None = None,
        ttl_minutes: int | None = None,
    ):
        self.secret = secret or settings.AUTH_JWT_SECRET
        self.algorithm = algorithm or settings.AUTH_JWT_ALGORITHM
        self.ttl = timedelta(minutes=ttl_minutes or settings.AUTH_TOKEN_TTL_MINUTES)

    @property
    def expires_in(self) -> int:
        return int(self.ttl.total_seconds())

    def issue(self, user_id: int) -> str:
        now = datetime.now(timezone.utc)
        claims = {"sub": str(user_id), "iat": now, "exp": now + self.ttl}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def resolve(self, credential: str | None) -> int:
        if not credential:
            raise AuthenticationError("missing_token")
        try:
            payload = jwt.decode(credential, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise AuthenticationError("token_expired")
        except JWTError:
            raise AuthenticationError("invalid_token")
        subject = payload.get("sub")
        if not subject:
            raise AuthenticationError("token_missing_sub")
        try:
            return int(subject)
        except (TypeError, ValueError):
            raise AuthenticationError("token_bad_sub")


identity_resolver = JwtIdentityResolver()


def get_identity_resolver() -> IdentityResolver:
    return identity_resolver


async def get_current_user(
    request: Request,
    resolver: IdentityResolver = Depends(get_identity_resolver),
    users: UserRepository = Depends(get_user_repository),
):
    token = _extract_auth_token(request)
    try:
        user_id = resolver.resolve(token)
    except AuthenticationError as exc:
        audit_auth_failure(request, exc.reason, token_present=bool(token))
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = await users.find(user_id)
    if not user:
        audit_auth_failure(request, "unknown_user", user_id=user_id, token_present=True)
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------

def can_mutate(acting_user_id: int, resource_owner_id: int) -> bool:
    return acting_user_id == resource_owner_id


def require_owner(request: Request | None, resource, user) -> None:
    if not can_mutate(user.id, resource.user_id):
        audit_auth_failure(request, "not_owner", user_id=user.id, token_present=True)
        raise HTTPException(status_code=403, detail="Forbidden")
