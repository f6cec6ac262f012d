"""Integration tests for the password endpoints."""

from datetime import timedelta

import pytest

from teacher_directory import security
from teacher_directory.security import create_access_token

from conftest import ADMIN_PASSWORD, ADMIN_USER


def verify(client, username, password):
    return client.post("/api/verify-password", json={"username": username, "password": password})


class TestSetPassword:

    def test_first_credential_needs_no_token(self, client):
        response = client.post("/api/set-password", json={"username": "admin", "password": "pw"})
        assert response.status_code == 201
        assert response.json() == {"message": "Password set successfully."}

    @pytest.mark.parametrize("body", [{}, {"username": "admin"}, {"password": "pw"}, {"username": "", "password": "pw"}])
    def test_missing_fields(self, client, body):
        assert client.post("/api/set-password", json=body).status_code == 400

    def test_later_credentials_need_token(self, client, admin_token):
        response = client.post("/api/set-password", json={"username": "second", "password": "pw"})
        assert response.status_code == 401

    def test_admin_can_update(self, client, auth_headers):
        response = client.post(
            "/api/set-password", json={"username": ADMIN_USER, "password": "new pw"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Password updated successfully."}
        assert verify(client, ADMIN_USER, "new pw").status_code == 200
        assert verify(client, ADMIN_USER, ADMIN_PASSWORD).status_code == 401

    def test_overlong_password(self, client):
        response = client.post("/api/set-password", json={"username": "admin", "password": "x" * 73})
        assert response.status_code == 400


class TestVerifyPassword:

    def test_issues_token(self, client, admin_token):
        response = verify(client, ADMIN_USER, ADMIN_PASSWORD)
        body = response.json()
        assert body["message"] == "Password verified successfully."
        assert body["tokenType"] == "bearer"
        assert body["expiresIn"] > 0
        assert body["token"]

    def test_wrong_password(self, client, admin_token):
        response = verify(client, ADMIN_USER, "wrong")
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials."}

    def test_unknown_user(self, client, admin_token):
        response = verify(client, "nobody", ADMIN_PASSWORD)
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials."}

    def test_unknown_user_still_checks_a_hash(self, client, admin_token, monkeypatch):
        calls = []
        real_check = security.check_password

        def recording_check(password, password_hash):
            calls.append(password_hash)
            return real_check(password, password_hash)

        monkeypatch.setattr(security, "check_password", recording_check)
        assert verify(client, "nobody", ADMIN_PASSWORD).status_code == 401
        assert len(calls) == 1
        assert calls[0].startswith("$2")

    def test_missing_fields(self, client):
        assert client.post("/api/verify-password", json={"username": "admin"}).status_code == 400

    def test_expired_token_rejected(self, client, admin_token):
        expired = create_access_token(ADMIN_USER, expires_delta=timedelta(seconds=-5))
        response = client.delete("/api/delete-teacher/Anyone", headers={"Authorization": f"Bearer {expired}"})
        assert response.status_code == 401
        assert response.json() == {"error": "Session expired. Please log in again."}


class TestChangePassword:

    def change(self, client, old, new, username=ADMIN_USER):
        return client.put(
            "/api/change-password",
            json={"username": username, "oldPassword": old, "newPassword": new},
        )

    def test_change_with_correct_old(self, client, admin_token):
        response = self.change(client, ADMIN_PASSWORD, "rotated")
        assert response.status_code == 200
        assert response.json() == {"message": "Password changed successfully."}
        assert verify(client, ADMIN_USER, "rotated").status_code == 200
        assert verify(client, ADMIN_USER, ADMIN_PASSWORD).status_code == 401

    def test_wrong_old_leaves_credential_unchanged(self, client, admin_token):
        response = self.change(client, "not it", "rotated")
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid old password."}
        assert verify(client, ADMIN_USER, ADMIN_PASSWORD).status_code == 200
        assert verify(client, ADMIN_USER, "rotated").status_code == 401

    def test_unknown_user(self, client, admin_token):
        assert self.change(client, ADMIN_PASSWORD, "rotated", username="nobody").status_code == 401

    def test_missing_fields(self, client):
        response = client.put("/api/change-password", json={"username": "admin", "oldPassword": "x"})
        assert response.status_code == 400
