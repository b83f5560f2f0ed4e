"""
Authentication tests.

Verifies:
- Login, role-filtered login and the x-admin-panel restriction
- Lockout after five failed logins and lazy unlock once it expires
- Every 401 token failure carries its machine code
- Password change invalidates older tokens
- Sub-admin management and capability resolution
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from fieldops.models import User
from fieldops.services.auth_service import MAX_FAILED_ATTEMPTS
from fieldops.time_utils import utcnow

from conftest import PASSWORD


def _signed(user_id, *, iat_offset=0, exp_offset=3600, secret="test-jwt-secret"):
    now = int(datetime.now(timezone.utc).timestamp())
    payload = {"id": user_id, "role": "Marketing Staff", "iat": now + iat_offset, "exp": now + exp_offset}
    return {"Authorization": f"Bearer {jwt.encode(payload, secret, algorithm='HS256')}"}


def _login(client, email, password=PASSWORD, **extra):
    headers = extra.pop("headers", None)
    return client.post("/api/auth/login", json={"email": email, "password": password, **extra}, headers=headers)


# =============================================================================
# LOGIN
# =============================================================================


class TestLogin:

    def test_login_returns_token_and_user(self, client, marketing):
        resp = _login(client, marketing.email)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["token"]
        assert body["user"]["email"] == marketing.email
        assert "password_hash" not in body["user"]

    def test_login_is_case_insensitive_on_email(self, client, marketing):
        resp = _login(client, marketing.email.upper())
        assert resp.status_code == 200

    def test_wrong_password_counts_attempt(self, client, db_session, marketing):
        resp = _login(client, marketing.email, "WrongPass1!")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"
        assert db_session.get(User, marketing.id).login_attempts == 1

    def test_unknown_email(self, client, db_session):
        resp = _login(client, "nobody@fieldops.test")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"

    def test_missing_password_is_validation_error(self, client, db_session):
        resp = client.post("/api/auth/login", json={"email": "a@b.co"})
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_role_mismatch_names_the_role(self, client, marketing):
        resp = _login(client, marketing.email, role="Admin")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "No user with role 'Admin' found for this email"

    def test_admin_panel_rejects_field_roles(self, client, marketing):
        resp = _login(client, marketing.email, headers={"x-admin-panel": "true"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "You do not have permission to access the admin panel"

    def test_admin_panel_accepts_admin_and_sub_admin(self, client, admin, make_user):
        sub = make_user("Sub Admin", email="sub@fieldops.test", is_sub_admin=True, permissions=["orders"])
        assert _login(client, admin.email, headers={"x-admin-panel": "true"}).status_code == 200
        assert _login(client, sub.email, headers={"x-admin-panel": "true"}).status_code == 200

    def test_successful_login_resets_attempts(self, client, db_session, marketing):
        _login(client, marketing.email, "WrongPass1!")
        _login(client, marketing.email, "WrongPass1!")
        assert _login(client, marketing.email).status_code == 200

        user = db_session.get(User, marketing.id)
        assert user.login_attempts == 0
        assert user.last_login_at is not None


# =============================================================================
# LOCKOUT
# =============================================================================


class TestLockout:

    def test_fifth_failure_locks_account(self, client, db_session, marketing):
        for _ in range(MAX_FAILED_ATTEMPTS):
            assert _login(client, marketing.email, "WrongPass1!").status_code == 401

        user = db_session.get(User, marketing.id)
        assert user.account_locked is True
        assert user.lock_until > utcnow()

        resp = _login(client, marketing.email)
        assert resp.status_code == 401
        assert resp.get_json()["error"].startswith("Account is temporarily locked")

    def test_fourth_failure_does_not_lock(self, client, db_session, marketing):
        for _ in range(MAX_FAILED_ATTEMPTS - 1):
            _login(client, marketing.email, "WrongPass1!")
        assert _login(client, marketing.email).status_code == 200

    def test_expired_lock_is_cleared_on_next_login(self, client, db_session, marketing):
        marketing.account_locked = True
        marketing.login_attempts = MAX_FAILED_ATTEMPTS
        marketing.lock_until = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert _login(client, marketing.email).status_code == 200
        user = db_session.get(User, marketing.id)
        assert user.account_locked is False
        assert user.login_attempts == 0
        assert user.lock_until is None


# =============================================================================
# TOKENS
# =============================================================================


class TestTokenFailures:

    def test_no_token(self, client, db_session):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "NO_TOKEN"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "INVALID_TOKEN"

    def test_token_signed_with_other_secret(self, client, marketing):
        resp = client.get("/api/auth/me", headers=_signed(marketing.id, secret="someone-else"))
        assert resp.get_json()["code"] == "INVALID_TOKEN"

    def test_expired_token(self, client, marketing):
        resp = client.get("/api/auth/me", headers=_signed(marketing.id, iat_offset=-7200, exp_offset=-60))
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "TOKEN_EXPIRED"

    def test_deactivated_user(self, client, db_session, marketing, marketing_headers):
        marketing.active = False
        db_session.commit()
        resp = client.get("/api/auth/me", headers=marketing_headers)
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "USER_NOT_FOUND"

    def test_deleted_user(self, client, marketing):
        resp = client.get("/api/auth/me", headers=_signed(marketing.id + 1000))
        assert resp.get_json()["code"] == "USER_NOT_FOUND"

    def test_password_changed_after_issue(self, client, db_session, marketing, marketing_headers):
        marketing.password_changed_at = utcnow() + timedelta(hours=1)
        db_session.commit()
        resp = client.get("/api/auth/me", headers=marketing_headers)
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "PASSWORD_CHANGED"

    def test_cookie_token_is_accepted(self, client, marketing):
        token = _login(client, marketing.email).get_json()["token"]
        client.set_cookie("jwt", token)
        assert client.get("/api/auth/me").status_code == 200

    def test_expiring_token_sets_warning_headers(self, client, marketing):
        resp = client.get("/api/auth/me", headers=_signed(marketing.id, exp_offset=3600))
        assert resp.status_code == 200
        assert resp.headers["X-Token-Expires-Soon"] == "true"
        assert 0 < int(resp.headers["X-Token-Expires-In"]) <= 3600

    def test_fresh_token_has_no_warning(self, client, marketing_headers):
        resp = client.get("/api/auth/me", headers=marketing_headers)
        assert "X-Token-Expires-Soon" not in resp.headers


class TestMe:

    def test_me_lists_capabilities(self, client, marketing_headers):
        body = client.get("/api/auth/me", headers=marketing_headers).get_json()
        assert "PUNCH_IN_OUT" in body["data"]["capabilities"]
        assert "APPROVE_ORDERS" not in body["data"]["capabilities"]

    def test_refresh_issues_working_token(self, client, marketing_headers):
        resp = client.post("/api/auth/refresh-token", headers=marketing_headers)
        assert resp.status_code == 200
        token = resp.get_json()["token"]
        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    def test_logout_clears_cookie(self, client, db_session):
        resp = client.get("/api/auth/logout")
        assert resp.status_code == 200
        assert "jwt=" in resp.headers["Set-Cookie"]


# =============================================================================
# PASSWORDS AND REGISTRATION
# =============================================================================


class TestPasswordChange:

    def test_change_invalidates_older_tokens(self, client, db_session, marketing):
        old_headers = _signed(marketing.id, iat_offset=-60)
        resp = client.patch(
            "/api/auth/update-password",
            json={"currentPassword": PASSWORD, "newPassword": "NewPassword456!"},
            headers=old_headers,
        )
        assert resp.status_code == 200
        new_token = resp.get_json()["token"]

        stale = client.get("/api/auth/me", headers=old_headers)
        assert stale.get_json()["code"] == "PASSWORD_CHANGED"
        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {new_token}"}).status_code == 200

    def test_wrong_current_password(self, client, marketing_headers):
        resp = client.patch(
            "/api/auth/update-password",
            json={"currentPassword": "Nope1234!", "newPassword": "NewPassword456!"},
            headers=marketing_headers,
        )
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Current password is incorrect"

    @pytest.mark.parametrize("weak", ["short1!", "alllowercase1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_new_password(self, client, marketing_headers, weak):
        resp = client.patch(
            "/api/auth/update-password",
            json={"currentPassword": PASSWORD, "newPassword": weak},
            headers=marketing_headers,
        )
        assert resp.status_code == 400


class TestRegister:

    def test_register_defaults_to_marketing_staff(self, client, db_session):
        resp = client.post(
            "/api/auth/register",
            json={"name": "Asha", "email": "asha@fieldops.test", "password": PASSWORD},
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["user"]["role"] == "Marketing Staff"
        assert body["token"]

    @pytest.mark.parametrize("role", ["Admin", "Sub Admin"])
    def test_register_cannot_create_privileged_roles(self, client, db_session, role):
        resp = client.post(
            "/api/auth/register",
            json={"name": "Eve", "email": "eve@fieldops.test", "password": PASSWORD, "role": role},
        )
        assert resp.status_code == 400
        assert db_session.query(User).count() == 0

    def test_register_duplicate_email(self, client, marketing):
        resp = client.post(
            "/api/auth/register",
            json={"name": "Dup", "email": marketing.email, "password": PASSWORD},
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "User already exists"


# =============================================================================
# SUB-ADMINS
# =============================================================================


class TestSubAdmins:

    def test_create_sub_admin_grants_section_capabilities(self, client, admin_headers, headers_for, db_session):
        resp = client.post(
            "/api/auth/sub-admins",
            json={"name": "Orders Desk", "email": "orders@fieldops.test", "password": PASSWORD, "permissions": ["orders"]},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        sub = db_session.get(User, resp.get_json()["data"]["id"])
        assert sub.is_sub_admin is True

        headers = headers_for(sub)
        assert client.get("/api/orders", headers=headers).status_code == 200
        assert client.get("/api/staff", headers=headers).status_code == 403

    def test_unknown_section_rejected(self, client, admin_headers):
        resp = client.post(
            "/api/auth/sub-admins",
            json={"name": "X", "email": "x@fieldops.test", "password": PASSWORD, "permissions": ["payroll"]},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid permission(s) specified"

    def test_update_and_delete_sub_admin(self, client, admin_headers, make_user):
        sub = make_user("Sub Admin", email="sub@fieldops.test", is_sub_admin=True, permissions=["orders"])

        resp = client.put(f"/api/auth/sub-admins/{sub.id}", json={"permissions": ["damage"]}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["permissions"] == ["damage"]

        assert client.delete(f"/api/auth/sub-admins/{sub.id}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/auth/sub-admins/{sub.id}", headers=admin_headers).status_code == 404

    def test_manager_cannot_manage_sub_admins(self, client, manager_headers):
        assert client.get("/api/auth/sub-admins", headers=manager_headers).status_code == 403

    def test_permission_catalog(self, client, admin_headers):
        body = client.get("/api/auth/permissions", headers=admin_headers).get_json()
        codes = [p["code"] for perms in body["data"]["categories"].values() for p in perms]
        assert "PROCESS_DAMAGE_CLAIMS" in codes
        assert body["data"]["sections"]["orders"] == ["VIEW_ORDERS", "VIEW_ALL_ORDERS"]


class TestUserLookups:

    def test_users_by_role(self, client, marketing_headers, manager):
        resp = client.get("/api/auth/users-by-role/Mid-Level%20Manager", headers=marketing_headers)
        assert resp.status_code == 200
        assert [u["id"] for u in resp.get_json()["data"]] == [manager.id]

    def test_users_by_unknown_role(self, client, marketing_headers):
        resp = client.get("/api/auth/users-by-role/Pilot", headers=marketing_headers)
        assert resp.status_code == 400

    def test_all_users_hides_inactive(self, client, db_session, marketing_headers, make_user):
        make_user("Godown Incharge", email="gone@fieldops.test", active=False)
        body = client.get("/api/auth/all-users", headers=marketing_headers).get_json()
        assert "gone@fieldops.test" not in [u["email"] for u in body["data"]]
