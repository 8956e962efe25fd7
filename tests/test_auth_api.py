"""HTTP tests for /auth and /users through the FastAPI app with an in-memory DB."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from fastapi.testclient import TestClient

from app.api.v1.auth import get_notifier
from app.core.config import get_settings
from app.core.database import get_db
from app.core.security import fingerprint
from app.core.tokens import TokenType, issue_token
from app.main import app
from app.models import User
from app.services import credential_store

from support import RecordingNotifier, add_user, make_session_factory, make_settings

PREFIX = "/api/v1"


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        patcher = patch("app.core.security.BCRYPT_ROUNDS", 4)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.SessionLocal = make_session_factory()
        self.settings = make_settings()
        self.notifier = RecordingNotifier()

        def override_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_db
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_notifier] = lambda: self.notifier
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

        with self.SessionLocal() as db:
            self.root_id = add_user(db, email="root@h.com", password="Root12345", role="systemAdmin").id
            self.admin_id = add_user(db, email="admin@h.com", password="Admin12345", role="admin").id
            self.member_id = add_user(db, email="a@h.com", password="Secret123", role="user").id

    def login(self, email: str, password: str) -> dict:
        response = self.client.post(f"{PREFIX}/auth/login", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def bearer(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def load(self, user_id: int) -> User:
        with self.SessionLocal() as db:
            user = db.get(User, user_id)
            db.expunge(user)
            return user


class TestLoginEndpoint(ApiTestCase):
    def test_login_scenario(self) -> None:
        body = self.login("a@h.com", "Secret123")
        self.assertEqual(body["message"], "Login successful")
        self.assertIn("accessToken", body)
        self.assertIn("refreshToken", body)
        self.assertEqual(body["user"], {"email": "a@h.com", "tenant": "Central Hospital", "role": "user"})
        self.assertEqual(self.load(self.member_id).refresh_token_fingerprint, fingerprint(body["refreshToken"]))

    def test_wrong_password_and_unknown_email_look_the_same(self) -> None:
        wrong = self.client.post(f"{PREFIX}/auth/login", json={"email": "a@h.com", "password": "wrong"})
        unknown = self.client.post(f"{PREFIX}/auth/login", json={"email": "x@h.com", "password": "wrong"})
        for response in (wrong, unknown):
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json(), {"message": "Invalid email or password"})

    def test_malformed_body_is_400(self) -> None:
        response = self.client.post(f"{PREFIX}/auth/login", json={"email": "a@h.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Invalid input")
        self.assertTrue(response.json()["errors"])


class TestGate(ApiTestCase):
    def test_missing_header(self) -> None:
        response = self.client.get(f"{PREFIX}/auth/me")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Valid Bearer token is required")
        self.assertEqual(response.headers["www-authenticate"], "Bearer")

    def test_non_bearer_scheme(self) -> None:
        response = self.client.get(f"{PREFIX}/auth/me", headers={"Authorization": "Basic abc"})
        self.assertEqual(response.status_code, 401)

    def test_access_token_attaches_identity(self) -> None:
        body = self.login("admin@h.com", "Admin12345")
        response = self.client.get(f"{PREFIX}/auth/me", headers=self.bearer(body["accessToken"]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"userId": self.admin_id, "email": "admin@h.com", "role": "admin"}
        )

    def test_refresh_token_rejected_by_gate(self) -> None:
        body = self.login("a@h.com", "Secret123")
        response = self.client.get(f"{PREFIX}/auth/me", headers=self.bearer(body["refreshToken"]))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid token type")

    def test_expired_access_token(self) -> None:
        token = issue_token(
            self.member_id,
            TokenType.ACCESS,
            self.settings,
            role="user",
            email="a@h.com",
            now=datetime.now(UTC) - timedelta(hours=1),
        )
        response = self.client.get(f"{PREFIX}/auth/me", headers=self.bearer(token))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Token has expired")

    def test_garbage_token(self) -> None:
        response = self.client.get(f"{PREFIX}/auth/me", headers=self.bearer("abc.def.ghi"))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["message"], "Invalid token")

    def test_admin_routes_forbidden_for_users(self) -> None:
        body = self.login("a@h.com", "Secret123")
        response = self.client.get(f"{PREFIX}/users", headers=self.bearer(body["accessToken"]))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(
            response.json()["message"], "Only admin and system admin can perform this action"
        )


class TestRefreshAndLogout(ApiTestCase):
    def test_rotation_and_replay(self) -> None:
        body = self.login("a@h.com", "Secret123")
        first = self.client.post(f"{PREFIX}/auth/refresh-token", json={"refreshToken": body["refreshToken"]})
        self.assertEqual(first.status_code, 200)
        self.assertEqual(set(first.json()), {"accessToken", "refreshToken"})
        replay = self.client.post(f"{PREFIX}/auth/refresh-token", json={"refreshToken": body["refreshToken"]})
        self.assertEqual(replay.status_code, 403)
        self.assertEqual(replay.json()["message"], "Invalid refresh token")

    def test_access_token_on_refresh_endpoint(self) -> None:
        body = self.login("a@h.com", "Secret123")
        response = self.client.post(f"{PREFIX}/auth/refresh-token", json={"refreshToken": body["accessToken"]})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid token type")

    def test_missing_refresh_token(self) -> None:
        for payload in ({}, {"refreshToken": ""}):
            with self.subTest(payload=payload):
                response = self.client.post(f"{PREFIX}/auth/refresh-token", json=payload)
                self.assertEqual(response.status_code, 401)
                self.assertEqual(response.json()["message"], "Refresh token is required")

    def test_logout_revokes_refresh(self) -> None:
        body = self.login("a@h.com", "Secret123")
        response = self.client.post(f"{PREFIX}/auth/logout", headers=self.bearer(body["accessToken"]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Logout successful"})
        self.assertIsNone(self.load(self.member_id).refresh_token_fingerprint)
        refresh = self.client.post(f"{PREFIX}/auth/refresh-token", json={"refreshToken": body["refreshToken"]})
        self.assertEqual(refresh.status_code, 403)

    def test_logout_requires_token(self) -> None:
        self.assertEqual(self.client.post(f"{PREFIX}/auth/logout").status_code, 401)


class TestPasswordEndpoints(ApiTestCase):
    def test_admin_cannot_change_system_admin_password(self) -> None:
        token = self.login("admin@h.com", "Admin12345")["accessToken"]
        response = self.client.post(
            f"{PREFIX}/auth/change-password/{self.root_id}",
            json={"newPassword": "NewPass123"},
            headers=self.bearer(token),
        )
        self.assertEqual(response.status_code, 403)

    def test_system_admin_changes_admin_password(self) -> None:
        token = self.login("root@h.com", "Root12345")["accessToken"]
        response = self.client.post(
            f"{PREFIX}/auth/change-password/{self.admin_id}",
            json={"newPassword": "NewPass123"},
            headers=self.bearer(token),
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Password updated successfully"})
        self.login("admin@h.com", "NewPass123")

    def test_user_changes_own_password(self) -> None:
        token = self.login("a@h.com", "Secret123")["accessToken"]
        wrong = self.client.post(
            f"{PREFIX}/auth/change-password/{self.member_id}",
            json={"oldPassword": "nope", "newPassword": "NewPass123"},
            headers=self.bearer(token),
        )
        self.assertEqual(wrong.status_code, 400)
        self.assertEqual(wrong.json()["message"], "Old password is incorrect")
        ok = self.client.post(
            f"{PREFIX}/auth/change-password/{self.member_id}",
            json={"oldPassword": "Secret123", "newPassword": "NewPass123"},
            headers=self.bearer(token),
        )
        self.assertEqual(ok.status_code, 200)

    def test_unknown_account(self) -> None:
        token = self.login("root@h.com", "Root12345")["accessToken"]
        response = self.client.post(
            f"{PREFIX}/auth/change-password/9999",
            json={"newPassword": "NewPass123"},
            headers=self.bearer(token),
        )
        self.assertEqual(response.status_code, 404)

    def test_forget_and_reset_flow(self) -> None:
        response = self.client.post(f"{PREFIX}/auth/forget-password", json={"email": "a@h.com"})
        self.assertEqual(response.status_code, 200)
        raw = self.notifier.last_token
        self.assertNotIn(raw, response.text)

        weak = self.client.post(f"{PREFIX}/auth/reset-password", json={"token": raw, "newPassword": "short"})
        self.assertEqual(weak.status_code, 400)
        self.assertEqual(weak.json()["message"], "Invalid password format")
        self.assertEqual(len(weak.json()["errors"]), 3)

        ok = self.client.post(f"{PREFIX}/auth/reset-password", json={"token": raw, "newPassword": "Brandnew123"})
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json(), {"message": "Password reset successfully"})
        self.login("a@h.com", "Brandnew123")

        again = self.client.post(f"{PREFIX}/auth/reset-password", json={"token": raw, "newPassword": "Another123"})
        self.assertEqual(again.status_code, 404)
        self.assertEqual(again.json(), {"message": "Invalid or expired token"})

    def test_expired_reset_token(self) -> None:
        raw = "ef" * 32
        with self.SessionLocal() as db:
            credential_store.set_reset_token(
                db, self.member_id, fingerprint(raw), datetime.now(UTC) - timedelta(minutes=5)
            )
        response = self.client.post(f"{PREFIX}/auth/reset-password", json={"token": raw, "newPassword": "Brandnew123"})
        self.assertEqual(response.status_code, 404)
        self.login("a@h.com", "Secret123")

    def test_forget_unknown_email(self) -> None:
        response = self.client.post(f"{PREFIX}/auth/forget-password", json={"email": "x@h.com"})
        self.assertEqual(response.status_code, 404)

    def test_forget_notification_failure(self) -> None:
        self.notifier.fail = True
        response = self.client.post(f"{PREFIX}/auth/forget-password", json={"email": "a@h.com"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["message"], "SMTP server unreachable")


class TestUsersEndpoints(ApiTestCase):
    def test_create_list_update_delete(self) -> None:
        headers = self.bearer(self.login("admin@h.com", "Admin12345")["accessToken"])
        created = self.client.post(
            f"{PREFIX}/users",
            json={"email": "new@h.com", "password": "Welcome123", "hospitalName": "North Hospital"},
            headers=headers,
        )
        self.assertEqual(created.status_code, 201, created.text)
        user = created.json()["user"]
        self.assertEqual(user["role"], "guest")
        self.assertNotIn("passwordHash", user)
        self.assertNotIn("refreshTokenFingerprint", user)

        listed = self.client.get(f"{PREFIX}/users", headers=headers)
        self.assertEqual(len(listed.json()["users"]), 4)

        updated = self.client.put(f"{PREFIX}/users/{user['id']}", json={"role": "user"}, headers=headers)
        self.assertEqual(updated.json()["user"]["role"], "user")

        bad_role = self.client.put(f"{PREFIX}/users/{user['id']}", json={"role": "owner"}, headers=headers)
        self.assertEqual(bad_role.status_code, 400)

        deleted = self.client.delete(f"{PREFIX}/users/{user['id']}", headers=headers)
        self.assertEqual(deleted.json(), {"message": "User deleted permanently"})
        self.assertEqual(self.client.get(f"{PREFIX}/users/{user['id']}", headers=headers).status_code, 404)

    def test_duplicate_email_conflict(self) -> None:
        headers = self.bearer(self.login("admin@h.com", "Admin12345")["accessToken"])
        response = self.client.post(
            f"{PREFIX}/users",
            json={"email": "a@h.com", "password": "Welcome123", "hospitalName": "North Hospital"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 409)


if __name__ == "__main__":
    unittest.main()
