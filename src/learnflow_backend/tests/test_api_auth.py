from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.activity import ActivityLog
from learnflow_backend.model.auth import PasswordReset, UserInvite, UserSession
from learnflow_backend.permissions.auth import decode_session_cookie, encode_session_cookie
from learnflow_backend.services.credentials import issue_invite, issue_reset_code
from learnflow_backend.services.sessions import is_session_valid
from learnflow_backend.settings import settings
from learnflow_backend.utils import utcnow


class TestSessionCookie:

    def test_round_trip(self):
        value = encode_session_cookie("s-1", "u-1")
        assert decode_session_cookie(value) == {"sessionId": "s-1", "userId": "u-1"}

    @pytest.mark.parametrize("value", [None, "", "not base64!", "e30=", "bnVsbA=="])
    def test_malformed_values_are_ignored(self, value):
        assert decode_session_cookie(value) is None

    def test_session_expiry(self):
        now = utcnow()
        assert is_session_valid(UserSession(login_at=now - timedelta(days=6)), now)
        assert not is_session_valid(UserSession(login_at=now - timedelta(days=7)), now)
        assert not is_session_valid(UserSession(login_at=now, logout_at=now), now)


class TestLogin:

    def test_login_sets_cookie_and_redirect(self, db, client, staff):
        response = client.post("/api/auth/login", json={"username": "Trainer_A", "password": "secret123"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["redirect"] == "/trainer"
        assert body["user"]["username"] == "trainer_a"
        assert "password_hash" not in body["user"]
        assert settings.SESSION_COOKIE_NAME in response.cookies

        assert db.query(UserSession).filter(UserSession.user_id == staff["trainer"].id).count() == 1
        assert db.query(ActivityLog).filter(ActivityLog.action == "login").count() == 1

    def test_invalid_credentials(self, client, staff):
        response = client.post("/api/auth/login", json={"username": "trainer_a", "password": "wrong-password"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid credentials"}

        response = client.post("/api/auth/login", json={"username": "ghost", "password": "secret123"})
        assert response.status_code == 401

    def test_deactivated_account(self, client, make_user):
        make_user("sleeper", UserRole.TRAINER, is_active=False)
        response = client.post("/api/auth/login", json={"username": "sleeper", "password": "secret123"})
        assert response.status_code == 403
        assert response.json()["error"] == "Account is deactivated"

    def test_missing_fields_are_bad_requests(self, client):
        response = client.post("/api/auth/login", json={"username": "x"})
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestSession:

    def test_me_requires_a_session(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Unauthorized"}

    def test_me_and_logout(self, db, staff, login_as):
        c = login_as(staff["candidate"])

        response = c.get("/api/auth/me")
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "candidate"

        assert c.post("/api/auth/logout").status_code == 200
        assert c.get("/api/auth/me").status_code == 401

        session = db.query(UserSession).filter(UserSession.user_id == staff["candidate"].id).one()
        assert session.logout_at is not None

    def test_forged_cookie_is_rejected(self, app_overrides, db, staff, login_as):
        login_as(staff["candidate"])
        session_id = db.query(UserSession.id).filter(UserSession.user_id == staff["candidate"].id).scalar()

        forged = TestClient(app_overrides)
        forged.cookies.set(settings.SESSION_COOKIE_NAME, encode_session_cookie(session_id, staff["admin"].id))
        assert forged.get("/api/auth/me").status_code == 401

    def test_deactivation_ends_access(self, db, staff, login_as):
        c = login_as(staff["candidate"])
        staff["candidate"].is_active = False
        db.commit()
        assert c.get("/api/auth/me").status_code == 401


class TestPasswordChange:

    def test_change_password(self, client, staff, login_as):
        c = login_as(staff["trainer"])

        response = c.post("/api/auth/password", json={"current_password": "nope", "new_password": "another1"})
        assert response.status_code == 400
        assert response.json()["error"] == "Current password is incorrect"

        response = c.post("/api/auth/password", json={"current_password": "secret123", "new_password": "short"})
        assert response.status_code == 400

        response = c.post("/api/auth/password", json={"current_password": "secret123", "new_password": "another1"})
        assert response.status_code == 200

        assert client.post("/api/auth/login", json={"username": "trainer_a", "password": "another1"}).status_code == 200


class TestPasswordReset:

    def test_forgot_and_reset(self, db, client, staff, email_service):
        response = client.post("/api/auth/forgot", json={"email": "CAND_1@example.com"})
        assert response.status_code == 200
        code = email_service.reset_codes[-1]["code"]
        assert len(code) == 6 and code.isdigit()

        response = client.post("/api/auth/reset", json={"email": "cand_1@example.com", "code": code, "password": "fresh-pass"})
        assert response.status_code == 200

        response = client.post("/api/auth/reset", json={"email": "cand_1@example.com", "code": code, "password": "fresh-pass2"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid or used code"

        assert client.post("/api/auth/login", json={"username": "cand_1", "password": "fresh-pass"}).status_code == 200

    def test_unknown_email(self, client, staff):
        response = client.post("/api/auth/forgot", json={"email": "nobody@example.com"})
        assert response.status_code == 404
        assert response.json()["error"] == "Email not found"

    def test_newer_code_revokes_older(self, db, client, staff):
        first = issue_reset_code(db, staff["candidate"])
        second = issue_reset_code(db, staff["candidate"])
        db.commit()

        if first.code != second.code:
            response = client.post("/api/auth/reset", json={"email": "cand_1@example.com", "code": first.code, "password": "fresh-pass"})
            assert response.status_code == 400

        response = client.post("/api/auth/reset", json={"email": "cand_1@example.com", "code": second.code, "password": "fresh-pass"})
        assert response.status_code == 200

    def test_expired_code(self, db, client, staff):
        reset = issue_reset_code(db, staff["candidate"], now=utcnow() - timedelta(hours=2))
        db.commit()

        response = client.post("/api/auth/reset", json={"email": "cand_1@example.com", "code": reset.code, "password": "fresh-pass"})
        assert response.status_code == 400
        assert response.json()["error"] == "Code has expired"
        assert db.query(PasswordReset).filter(PasswordReset.used_at.isnot(None)).count() == 0


class TestInvites:

    def test_invite_accept_flow(self, db, client, staff):
        invite = issue_invite(db, staff["candidate"], issued_by=staff["trainer"].id)
        db.commit()

        response = client.get("/api/auth/invite", params={"token": invite.token})
        assert response.status_code == 200
        assert response.json()["user"] == {"username": "cand_1", "full_name": "Cand_1", "email": "cand_1@example.com"}

        response = client.post("/api/auth/invite/accept", json={"token": invite.token, "password": "welcome1"})
        assert response.status_code == 200

        response = client.get("/api/auth/invite", params={"token": invite.token})
        assert response.status_code == 404
        assert response.json()["error"] == "Invite not found or already used"

        assert client.post("/api/auth/login", json={"username": "cand_1", "password": "welcome1"}).status_code == 200

    def test_expired_invite(self, db, client, staff):
        invite = issue_invite(db, staff["candidate"], now=utcnow() - timedelta(hours=settings.INVITE_TTL_HOURS + 1))
        db.commit()

        response = client.post("/api/auth/invite/accept", json={"token": invite.token, "password": "welcome1"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invite has expired"

    def test_resend_invite(self, db, staff, login_as, email_service):
        old = issue_invite(db, staff["candidate"])
        db.commit()

        c = login_as(staff["trainer"])
        response = c.post("/api/auth/invite", json={"user_id": staff["candidate"].id})
        assert response.status_code == 200
        assert response.json()["invite_link"].startswith(f"{settings.APP_URL}/invite/")
        assert email_service.invites[-1]["to"] == "cand_1@example.com"

        db.refresh(old)
        assert old.revoked_at is not None
        assert db.query(UserInvite).filter(UserInvite.revoked_at.is_(None)).count() == 1

    def test_resend_requires_management(self, db, staff, login_as):
        c = login_as(staff["crm"])
        response = c.post("/api/auth/invite", json={"user_id": staff["candidate"].id})
        assert response.status_code == 403
