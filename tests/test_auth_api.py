"""
Endpoint tests for /v1/authorizations.
"""
from app.security import JwtIdentityResolver, get_identity_resolver
from app.main import app


class TestLogin:
    def test_login_issues_usable_token(self, client, alice):
        resp = client.post("/v1/authorizations", json={"email": "alice@example.com", "password": "secret"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["expires_in"] > 0
        me = client.get("/v1/user", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.json()["data"]["email"] == "alice@example.com"

    def test_wrong_password(self, client, alice):
        resp = client.post("/v1/authorizations", json={"email": "alice@example.com", "password": "nope"})
        assert resp.status_code == 401
        assert resp.content == b""

    def test_unknown_email(self, client):
        resp = client.post("/v1/authorizations", json={"email": "ghost@example.com", "password": "x"})
        assert resp.status_code == 401

    def test_missing_fields(self, client):
        resp = client.post("/v1/authorizations", json={})
        assert resp.status_code == 400
        assert set(resp.json()) == {"email", "password"}

    def test_numeric_password(self, client, alice):
        resp = client.post("/v1/authorizations", json={"email": "alice@example.com", "password": 5})
        assert resp.status_code == 400
        assert resp.json() == {"password": ["The password must be a string."]}


class TestRefresh:
    def test_refresh_returns_new_token(self, client, alice):
        resp = client.put("/v1/authorizations/current", headers=alice)
        assert resp.status_code == 200
        token = resp.json()["token"]
        assert client.get("/v1/user", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    def test_refresh_requires_token(self, client):
        assert client.put("/v1/authorizations/current").status_code == 401

    def test_expired_token_rejected(self, client, alice):
        user_id = client.get("/v1/user", headers=alice).json()["data"]["id"]
        expired = JwtIdentityResolver(ttl_minutes=-1).issue(user_id)
        resp = client.get("/v1/user", headers={"Authorization": f"Bearer {expired}"})
        assert resp.status_code == 401

    def test_token_for_unknown_user_rejected(self, client):
        token = JwtIdentityResolver().issue(404)
        assert client.get("/v1/user", headers={"X-Auth-Token": token}).status_code == 401


class TestIdentityResolverOverride:
    def test_custom_resolver_is_used(self, client, alice):
        user_id = client.get("/v1/user", headers=alice).json()["data"]["id"]

        class StaticResolver:
            expires_in = 0

            def issue(self, uid):
                return "static"

            def resolve(self, credential):
                return user_id

        app.dependency_overrides[get_identity_resolver] = StaticResolver
        resp = client.get("/v1/user", headers={"Authorization": "Bearer anything"})
        assert resp.status_code == 200
        assert resp.json()["data"]["id"] == user_id
