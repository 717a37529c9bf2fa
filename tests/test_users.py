# =============================================================================
# tests/test_users.py - Public Profiles, User Administration and Health
# =============================================================================
# Run with: pytest tests/test_users.py -v
# =============================================================================

from tests.conftest import API


class TestPublicProfile:

    def test_profile_hides_email(self, client, member):
        response = client.get(f"{API}/users/{member.id}")

        assert response.status_code == 200
        assert response.json()["username"] == member.username
        assert "email" not in response.json()

    def test_unknown_user(self, client):
        response = client.get(f"{API}/users/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"


class TestAdminUsers:
    """The /admin/users directory."""

    def test_requires_admin(self, client, member):
        response = client.get(f"{API}/admin/users", headers=member.headers)

        assert response.status_code == 403

    def test_search_by_username_or_email(self, client, make_user, admin):
        make_user(username="grace")
        make_user(username="linus")

        body = client.get(f"{API}/admin/users", params={"search": "grace"}, headers=admin.headers).json()

        assert [u["username"] for u in body["data"]] == ["grace"]

    def test_status_filters(self, client, fake_db, make_user, admin):
        suspended = make_user(username="suspended")
        banned = make_user(username="banned")
        fake_db.set("users", suspended.id, suspended_until="2999-01-01T00:00:00+00:00")
        fake_db.set("users", banned.id, is_banned=True)

        def usernames(status):
            body = client.get(f"{API}/admin/users", params={"status": status}, headers=admin.headers).json()
            return {u["username"] for u in body["data"]}

        assert usernames("suspended") == {"suspended"}
        assert usernames("banned") == {"banned"}
        assert usernames("active") == {admin.username}

    def test_change_role(self, client, admin, member):
        response = client.patch(f"{API}/admin/users/{member.id}/role", headers=admin.headers, json={"role": "seller"})

        assert response.json()["role"] == "seller"

    def test_admin_cannot_demote_self(self, client, admin):
        response = client.patch(f"{API}/admin/users/{admin.id}/role", headers=admin.headers, json={"role": "member"})

        assert response.json()["code"] == "SELF_DEMOTION"

    def test_delete_user_revokes_access(self, client, admin, member):
        assert client.delete(f"{API}/admin/users/{member.id}", headers=admin.headers).status_code == 204

        assert client.get(f"{API}/auth/me", headers=member.headers).status_code == 401
        assert client.get(f"{API}/users/{member.id}").status_code == 404
        detail = client.get(f"{API}/admin/users/{member.id}", headers=admin.headers).json()
        assert detail["deleted_at"] is not None

    def test_deleted_status_filter(self, client, admin, member):
        client.delete(f"{API}/admin/users/{member.id}", headers=admin.headers)

        body = client.get(f"{API}/admin/users", params={"status": "deleted"}, headers=admin.headers).json()

        assert [u["id"] for u in body["data"]] == [member.id]


class TestHealth:

    def test_health(self, client):
        body = client.get(f"{API}/health").json()

        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0"

    def test_ready(self, client):
        body = client.get(f"{API}/health/ready").json()

        assert body["status"] == "ready"
        assert body["checks"] == {"database": "healthy", "redis": "healthy"}

    def test_ready_degraded_when_redis_fails(self, client, fake_redis, monkeypatch):
        def down():
            raise ConnectionError("refused")

        monkeypatch.setattr(fake_redis, "ping", down)

        response = client.get(f"{API}/health/ready")
        body = response.json()

        assert response.status_code == 503
        assert body["status"] == "degraded"
        assert body["checks"]["redis"].startswith("unhealthy")

    def test_live(self, client):
        assert client.get(f"{API}/health/live").json()["status"] == "alive"
