import pytest
from click.testing import CliRunner

from learnflow_backend.cli import cli as cli_module
from learnflow_backend.interface.roles import UserRole
from learnflow_backend.model.auth import User
from learnflow_backend.permissions.auth import verify_password
from learnflow_backend.server import init_admin_user


@pytest.fixture
def runner(db, monkeypatch):
    monkeypatch.setattr(cli_module, "get_db", lambda: iter([db]))
    return CliRunner()


class TestCreateAdmin:

    def test_creates_admin(self, db, runner):
        result = runner.invoke(cli_module.cli, [
            "create-admin", "-u", "Root_Admin", "-p", "supersecret", "-e", "Root@Example.com",
        ])

        assert result.exit_code == 0, result.output
        assert "Administrator root_admin created" in result.output

        admin = db.query(User).filter(User.username == "root_admin").one()
        assert admin.role == UserRole.ADMIN
        assert admin.email == "root@example.com"
        assert admin.password_set is True
        assert verify_password("supersecret", admin.password_hash)

    def test_rejects_duplicates(self, runner, make_user):
        make_user("root_admin", UserRole.ADMIN)

        result = runner.invoke(cli_module.cli, ["create-admin", "-u", "root_admin", "-p", "supersecret"])

        assert result.exit_code != 0
        assert "Username already exists" in result.output

    @pytest.mark.parametrize("username, password", [("x", "supersecret"), ("root_admin", "123")])
    def test_rejects_invalid_input(self, runner, username, password):
        result = runner.invoke(cli_module.cli, ["create-admin", "-u", username, "-p", password])
        assert result.exit_code == 2


class TestAdminBootstrap:

    def test_creates_admin_from_environment(self, db, monkeypatch):
        monkeypatch.setenv("ADMIN_USERNAME", "Boot_Admin")
        monkeypatch.setenv("ADMIN_PASSWORD", "bootpass")

        init_admin_user(db)
        init_admin_user(db)

        admins = db.query(User).filter(User.role == UserRole.ADMIN).all()
        assert [a.username for a in admins] == ["boot_admin"]

    def test_noop_without_credentials(self, db, monkeypatch):
        monkeypatch.delenv("ADMIN_USERNAME", raising=False)
        monkeypatch.delenv("ADMIN_PASSWORD", raising=False)

        init_admin_user(db)

        assert db.query(User).count() == 0
