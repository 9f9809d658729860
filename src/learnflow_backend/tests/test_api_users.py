import pytest

from learnflow_backend.api.exceptions import DependencyException
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.activity import ActivityLog
from learnflow_backend.model.auth import User, UserInvite


class TestCreateUser:

    def test_admin_creates_trainer_with_password(self, db, staff, login_as, email_service):
        c = login_as(staff["admin"])
        response = c.post("/api/users", json={
            "username": " New_Trainer ",
            "password": "trainer1",
            "email": "new@example.com",
            "role": "trainer",
        })

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["user"]["username"] == "new_trainer"
        assert body["user"]["created_by"] == staff["admin"].id
        assert body["user"]["password_set"] is True
        assert body["invite_link"] is None
        assert email_service.invites == []

        assert db.query(ActivityLog).filter(ActivityLog.action == "created_user").count() == 1

    def test_trainer_creates_candidate_with_invite(self, db, staff, login_as, email_service):
        c = login_as(staff["trainer"])
        response = c.post("/api/users", json={
            "username": "cand_2",
            "email": "Cand_2@Example.com",
            "role": "candidate",
        })

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["user"]["password_set"] is False
        assert body["user"]["email"] == "cand_2@example.com"
        assert "/invite/" in body["invite_link"]
        assert email_service.invites[-1]["to"] == "cand_2@example.com"
        assert db.query(UserInvite).count() == 1

    def test_invite_requires_email(self, staff, login_as):
        c = login_as(staff["trainer"])
        response = c.post("/api/users", json={"username": "cand_2", "role": "candidate"})
        assert response.status_code == 400
        assert response.json()["error"] == "An email address is required to send an invite"

    @pytest.mark.parametrize("creator, role", [
        ("trainer", "crm"),
        ("trainer", "other"),
        ("crm", "candidate"),
        ("admin", "admin"),
        ("candidate", "other"),
    ])
    def test_role_hierarchy_is_enforced(self, staff, login_as, creator, role):
        c = login_as(staff[creator])
        response = c.post("/api/users", json={"username": "someone", "password": "secret123", "role": role})
        assert response.status_code == 403

    def test_duplicates(self, staff, login_as):
        c = login_as(staff["admin"])

        response = c.post("/api/users", json={"username": "TRAINER_A", "password": "secret123", "role": "crm"})
        assert response.status_code == 400
        assert response.json()["error"] == "Username already exists"

        response = c.post("/api/users", json={
            "username": "crm_b", "password": "secret123", "role": "crm", "email": "CRM_A@example.com",
        })
        assert response.status_code == 400
        assert response.json()["error"] == "Email already exists"

    @pytest.mark.parametrize("username", ["ab", "has space", "x" * 31, "dash-ed"])
    def test_invalid_username(self, staff, login_as, username):
        c = login_as(staff["admin"])
        response = c.post("/api/users", json={"username": username, "password": "secret123", "role": "crm"})
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestBulkCreate:

    def test_partial_success(self, db, staff, login_as, email_service):
        c = login_as(staff["trainer"])
        response = c.post("/api/users/bulk", json={
            "role": "candidate",
            "users": [
                {"username": "bulk_1", "email": "bulk_1@example.com", "full_name": "Bulk One"},
                {"username": "cand_1", "email": "someone@example.com"},
                {"username": "bulk_3"},
            ],
        })

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["message"] == "Created 2 users, 1 failed"
        assert [r["success"] for r in body["results"]] == [True, False, True]
        assert body["results"][1]["error"] == "Username already exists"

        created = db.query(User).filter(User.username.in_(["bulk_1", "bulk_3"])).all()
        assert len(created) == 2
        assert all(u.created_by == staff["trainer"].id and not u.password_set for u in created)
        assert [i["to"] for i in email_service.invites] == ["bulk_1@example.com"]

    def test_duplicates_within_batch(self, staff, login_as):
        c = login_as(staff["admin"])
        response = c.post("/api/users/bulk", json={
            "role": "crm",
            "users": [
                {"username": "crm_x", "email": "x@example.com"},
                {"username": "CRM_X"},
                {"username": "crm_y", "email": "X@example.com"},
                {"username": "crm_z", "email": "not-an-email"},
                {"username": "!"},
            ],
        })

        errors = [r.get("error") for r in response.json()["results"]]
        assert errors == [
            None,
            "Username already exists",
            "Email already exists",
            "Invalid email address",
            "Invalid username format",
        ]
        assert response.json()["message"] == "Created 1 users, 4 failed"

    def test_role_must_be_manageable(self, staff, login_as):
        c = login_as(staff["crm"])
        response = c.post("/api/users/bulk", json={"role": "candidate", "users": [{"username": "nope_1"}]})
        assert response.status_code == 403


class TestListAndRead:

    def test_admin_lists_staff_by_default(self, staff, login_as):
        c = login_as(staff["admin"])
        usernames = {u["username"] for u in c.get("/api/users").json()["users"]}
        assert usernames == {"trainer_a", "crm_a"}

        usernames = {u["username"] for u in c.get("/api/users", params={"role": "candidate"}).json()["users"]}
        assert usernames == {"cand_1"}

    def test_trainer_lists_own_learners(self, staff, login_as, make_user):
        make_user("cand_9", UserRole.CANDIDATE, created_by=staff["admin"])
        c = login_as(staff["trainer"])

        users = c.get("/api/users").json()["users"]
        assert [u["username"] for u in users] == ["cand_1"]

        assert c.get("/api/users", params={"search": "zzz"}).json()["users"] == []

    def test_learner_cannot_list(self, staff, login_as):
        c = login_as(staff["candidate"])
        assert c.get("/api/users").status_code == 403

    def test_read_single_user(self, staff, login_as):
        c = login_as(staff["crm"])
        assert c.get(f"/api/users/{staff['candidate'].id}").status_code == 403
        assert c.get(f"/api/users/{staff['crm'].id}").status_code == 200
        assert c.get("/api/users/missing").status_code == 404


class TestUpdateAndDelete:

    def test_deactivate_managed_user(self, db, staff, login_as):
        c = login_as(staff["trainer"])
        response = c.patch(f"/api/users/{staff['candidate'].id}", json={"is_active": False})
        assert response.status_code == 200
        assert response.json()["user"]["is_active"] is False

    def test_empty_update(self, staff, login_as):
        c = login_as(staff["trainer"])
        response = c.patch(f"/api/users/{staff['candidate'].id}", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "No updates provided"

    def test_reassign(self, db, staff, login_as, make_user):
        trainer_b = make_user("trainer_b", UserRole.TRAINER, created_by=staff["admin"])

        c = login_as(staff["trainer"])
        response = c.patch(f"/api/users/{staff['candidate'].id}", json={"created_by": trainer_b.id})
        assert response.status_code == 403

        c = login_as(staff["admin"])
        response = c.patch(f"/api/users/{staff['candidate'].id}", json={"created_by": staff["crm"].id})
        assert response.status_code == 400
        assert response.json()["error"] == "The new owner cannot manage this user"

        response = c.patch(f"/api/users/{staff['candidate'].id}", json={"created_by": trainer_b.id})
        assert response.status_code == 200
        assert response.json()["user"]["created_by"] == trainer_b.id

    def test_delete_rules(self, db, staff, login_as, make_user):
        c = login_as(staff["admin"])

        response = c.delete(f"/api/users/{staff['admin'].id}")
        assert response.status_code == 400
        assert response.json()["error"] == "You cannot delete your own account"

        response = c.delete(f"/api/users/{staff['trainer'].id}")
        assert response.status_code == 400
        assert response.json()["error"] == "Reassign managed users first"

        spare = make_user("crm_spare", UserRole.CRM, created_by=staff["admin"])
        response = c.delete(f"/api/users/{spare.id}")
        assert response.status_code == 200
        assert db.query(User).filter(User.username == "crm_spare").first() is None

    def test_staff_cannot_delete_foreign_users(self, staff, login_as):
        c = login_as(staff["crm"])
        assert c.delete(f"/api/users/{staff['candidate'].id}").status_code == 403


class TestInviteDelivery:

    def test_mail_failure_keeps_user(self, db, staff, login_as, email_service, monkeypatch):
        def broken(to, full_name, link):
            raise DependencyException("Failed to send email")

        monkeypatch.setattr(email_service, "send_invite", broken)

        c = login_as(staff["trainer"])
        response = c.post("/api/users", json={"username": "cand_2", "email": "cand_2@example.com", "role": "candidate"})

        assert response.status_code == 200
        assert response.json()["invite_link"] is not None
        assert db.query(User).filter(User.username == "cand_2").count() == 1
