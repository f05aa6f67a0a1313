"""
Tests for the declarative validator and the per-endpoint rule tables.
"""
import pytest

from app.validation import (
    COMMENT_CREATE_RULES,
    LOGIN_RULES,
    PASSWORD_CHANGE_RULES,
    POST_RULES,
    USER_CREATE_RULES,
    USER_PATCH_RULES,
    FieldRule,
    validate,
)
from fakes import MemoryUserRepository


class TestPostRules:
    @pytest.mark.asyncio
    async def test_valid_payload(self):
        assert await validate({"title": "x" * 50, "content": "body"}, POST_RULES) == {}

    @pytest.mark.asyncio
    async def test_missing_fields(self):
        errors = await validate({}, POST_RULES)
        assert errors == {
            "title": ["The title field is required."],
            "content": ["The content field is required."],
        }

    @pytest.mark.asyncio
    async def test_blank_string_is_missing(self):
        errors = await validate({"title": "   ", "content": "c"}, POST_RULES)
        assert errors == {"title": ["The title field is required."]}

    @pytest.mark.asyncio
    async def test_title_too_long(self):
        errors = await validate({"title": "x" * 51, "content": "c"}, POST_RULES)
        assert errors == {"title": ["The title may not be greater than 50 characters."]}

    @pytest.mark.asyncio
    async def test_title_must_be_string(self):
        errors = await validate({"title": 12, "content": "c"}, POST_RULES)
        assert errors == {"title": ["The title must be a string."]}


class TestUserCreateRules:
    @pytest.mark.asyncio
    async def test_unique_email(self):
        users = MemoryUserRepository()
        await users.create({"email": "taken@example.com", "password": "x"})
        errors = await validate({"email": "taken@example.com", "password": "p"}, USER_CREATE_RULES, users)
        assert errors == {"email": ["The email has already been taken."]}

    @pytest.mark.asyncio
    async def test_deleted_user_email_is_free(self):
        users = MemoryUserRepository()
        user = await users.create({"email": "gone@example.com", "password": "x"})
        await users.destroy(user.id)
        errors = await validate({"email": "gone@example.com", "password": "p"}, USER_CREATE_RULES, users)
        assert errors == {}

    @pytest.mark.asyncio
    async def test_invalid_email(self):
        errors = await validate({"email": "not-an-email", "password": "p"}, USER_CREATE_RULES, MemoryUserRepository())
        assert errors == {"email": ["The email must be a valid email address."]}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email",
        ["Mallory <taken@example.com>", "<taken@example.com>", " taken@example.com", "taken@example.com "],
    )
    async def test_email_must_be_bare_address(self, email):
        users = MemoryUserRepository()
        await users.create({"email": "taken@example.com", "password": "x"})
        errors = await validate({"email": email, "password": "p"}, USER_CREATE_RULES, users)
        assert errors == {"email": ["The email must be a valid email address."]}

    @pytest.mark.asyncio
    async def test_domain_case_is_accepted(self):
        errors = await validate({"email": "Alice@Example.COM", "password": "p"}, USER_CREATE_RULES, MemoryUserRepository())
        assert errors == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", [123456, 1.5, True, ["pw"], {"pw": 1}])
    async def test_password_must_be_string(self, password):
        errors = await validate({"email": "a@example.com", "password": password}, USER_CREATE_RULES, MemoryUserRepository())
        assert errors == {"password": ["The password must be a string."]}

    @pytest.mark.asyncio
    async def test_unique_rule_needs_repository(self):
        with pytest.raises(ValueError):
            await validate({"email": "a@example.com", "password": "p"}, USER_CREATE_RULES)


class TestPasswordChangeRules:
    @pytest.mark.asyncio
    async def test_valid(self):
        payload = {"old_password": "old", "password": "new", "password_confirmation": "new"}
        assert await validate(payload, PASSWORD_CHANGE_RULES) == {}

    @pytest.mark.asyncio
    async def test_same_as_old(self):
        payload = {"old_password": "same", "password": "same", "password_confirmation": "same"}
        errors = await validate(payload, PASSWORD_CHANGE_RULES)
        assert errors == {"password": ["The password and old password must be different."]}

    @pytest.mark.asyncio
    async def test_confirmation_mismatch(self):
        payload = {"old_password": "old", "password": "new", "password_confirmation": "other"}
        errors = await validate(payload, PASSWORD_CHANGE_RULES)
        assert errors == {
            "password": ["The password confirmation does not match."],
            "password_confirmation": ["The password confirmation and password must match."],
        }

    @pytest.mark.asyncio
    async def test_numeric_values_rejected(self):
        payload = {"old_password": 1, "password": 2, "password_confirmation": 2}
        errors = await validate(payload, PASSWORD_CHANGE_RULES)
        assert errors == {
            "old_password": ["The old password must be a string."],
            "password": ["The password must be a string."],
            "password_confirmation": ["The password confirmation must be a string."],
        }


class TestLoginRules:
    @pytest.mark.asyncio
    async def test_numeric_password_rejected(self):
        errors = await validate({"email": "a@example.com", "password": 5}, LOGIN_RULES)
        assert errors == {"password": ["The password must be a string."]}


class TestUserPatchRules:
    @pytest.mark.asyncio
    async def test_all_optional(self):
        assert await validate({}, USER_PATCH_RULES) == {}
        assert await validate({"name": "", "avatar": ""}, USER_PATCH_RULES) == {}

    @pytest.mark.asyncio
    async def test_avatar_must_be_url(self):
        errors = await validate({"avatar": "not a url"}, USER_PATCH_RULES)
        assert errors == {"avatar": ["The avatar format is invalid."]}

    @pytest.mark.asyncio
    async def test_accepts_valid_values(self):
        payload = {"name": "alice", "avatar": "https://cdn.example.com/a.png"}
        assert await validate(payload, USER_PATCH_RULES) == {}


class TestCommentRules:
    @pytest.mark.asyncio
    async def test_reply_user_id_integer(self):
        errors = await validate({"content": "hi", "reply_user_id": "abc"}, COMMENT_CREATE_RULES)
        assert errors == {"reply_user_id": ["The reply user id must be an integer."]}

    @pytest.mark.asyncio
    async def test_reply_user_id_not_negative(self):
        errors = await validate({"content": "hi", "reply_user_id": -1}, COMMENT_CREATE_RULES)
        assert errors == {"reply_user_id": ["The reply user id must be at least 0."]}

    @pytest.mark.asyncio
    async def test_bool_is_not_integer(self):
        errors = await validate({"content": "hi", "reply_user_id": True}, COMMENT_CREATE_RULES)
        assert "reply_user_id" in errors


@pytest.mark.asyncio
async def test_unknown_kind_is_a_programming_error():
    with pytest.raises(ValueError):
        await validate({"x": "y"}, {"x": FieldRule(kind="colour")})
