"""
Declarative request validation.

Every endpoint that accepts a body owns a rule table (field name -> FieldRule).
``validate`` walks the table and returns ``{field: [messages]}``; an empty dict
means the payload is acceptable. Absent or blank optional fields skip their
remaining checks.
"""
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import AnyHttpUrl, EmailStr, TypeAdapter, ValidationError

from app.repositories.base import Repository

_email_adapter = TypeAdapter(EmailStr)
_url_adapter = TypeAdapter(AnyHttpUrl)
_INTEGER = re.compile(r"^-?\d+$")


@dataclass(frozen=True)
class FieldRule:
    required: bool = False
    kind: Optional[str] = None  # string | integer | email | url
    max_length: Optional[int] = None
    min_value: Optional[int] = None
    unique: bool = False
    confirmed: bool = False
    different: Optional[str] = None
    same: Optional[str] = None


RuleSet = Mapping[str, FieldRule]


POST_RULES: RuleSet = {
    "title": FieldRule(required=True, kind="string", max_length=50),
    "content": FieldRule(required=True, kind="string"),
}

COMMENT_CREATE_RULES: RuleSet = {
    "content": FieldRule(required=True, kind="string"),
    "reply_user_id": FieldRule(kind="integer", min_value=0),
}

COMMENT_UPDATE_RULES: RuleSet = {
    "content": FieldRule(required=True, kind="string"),
}

USER_CREATE_RULES: RuleSet = {
    "email": FieldRule(required=True, kind="email", unique=True),
    "password": FieldRule(required=True, kind="string"),
}

USER_PATCH_RULES: RuleSet = {
    "name": FieldRule(kind="string", max_length=50),
    "avatar": FieldRule(kind="url"),
}

PASSWORD_CHANGE_RULES: RuleSet = {
    "old_password": FieldRule(required=True, kind="string"),
    "password": FieldRule(required=True, kind="string", confirmed=True, different="old_password"),
    "password_confirmation": FieldRule(required=True, kind="string", same="password"),
}

LOGIN_RULES: RuleSet = {
    "email": FieldRule(required=True, kind="email"),
    "password": FieldRule(required=True, kind="string"),
}


def _label(field: str) -> str:
    return field.replace("_", " ")


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def _check_kind(kind: str, value: Any) -> bool:
    if kind == "string":
        return isinstance(value, str)
    if kind == "integer":
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (isinstance(value, str) and bool(_INTEGER.match(value)))
    if kind == "email":
        if not isinstance(value, str):
            return False
        try:
            address = _email_adapter.validate_python(value)
        except ValidationError:
            return False
        # 只接受裸地址，"Name <addr>" 和首尾空白都算格式错误；域名大小写不计
        return address.lower() == value.lower()
    if kind == "url":
        if not isinstance(value, str):
            return False
        try:
            _url_adapter.validate_python(value)
        except ValidationError:
            return False
        return True
    raise ValueError(f"unknown rule kind: {kind}")


_KIND_MESSAGES = {
    "string": "The {field} must be a string.",
    "integer": "The {field} must be an integer.",
    "email": "The {field} must be a valid email address.",
    "url": "The {field} format is invalid.",
}


async def validate(
    payload: Mapping[str, Any],
    rules: RuleSet,
    repository: Optional[Repository] = None,
) -> dict[str, list[str]]:
    """Check ``payload`` against ``rules``.

    ``repository`` is only consulted for ``unique`` rules, which look the
    value up with an equality criterion on the same field name.
    """
    errors: dict[str, list[str]] = {}

    def fail(field: str, message: str):
        errors.setdefault(field, []).append(message.format(field=_label(field)))

    for field, rule in rules.items():
        value = payload.get(field)
        if is_blank(value):
            if rule.required:
                fail(field, "The {field} field is required.")
            continue

        if rule.kind and not _check_kind(rule.kind, value):
            fail(field, _KIND_MESSAGES[rule.kind])
            continue

        if rule.max_length is not None and isinstance(value, str) and len(value) > rule.max_length:
            fail(field, "The {field} may not be greater than %d characters." % rule.max_length)

        if rule.min_value is not None and int(value) < rule.min_value:
            fail(field, "The {field} must be at least %d." % rule.min_value)

        if rule.confirmed and payload.get(f"{field}_confirmation") != value:
            fail(field, "The {field} confirmation does not match.")

        if rule.different and payload.get(rule.different) == value:
            fail(field, "The {field} and %s must be different." % _label(rule.different))

        if rule.same and payload.get(rule.same) != value:
            fail(field, "The {field} and %s must match." % _label(rule.same))

        if rule.unique:
            if repository is None:
                raise ValueError(f"unique rule on {field} needs a repository")
            if await repository.count({field: value}) > 0:
                fail(field, "The {field} has already been taken.")

    return errors
