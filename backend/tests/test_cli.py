"""
CLI command tests (flask system / flask users).
"""

from datetime import timedelta

from fieldops.models import User
from fieldops.time_utils import utcnow


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


class TestSystemCommands:

    def test_init_creates_admin_once(self, app, db_session):
        result = _invoke(app, "system", "init", "--email", "root@fieldops.test")
        assert result.exit_code == 0, result.output
        assert "PASS Created admin: root@fieldops.test" in result.output

        again = _invoke(app, "system", "init", "--email", "root@fieldops.test")
        assert again.exit_code == 0
        assert "PASS Using existing admin" in again.output
        assert db_session.query(User).filter_by(email="root@fieldops.test").count() == 1

    def test_init_rejects_weak_password(self, app, db_session):
        result = _invoke(app, "system", "init", "--email", "root@fieldops.test", "--password", "weak")
        assert result.exit_code != 0
        assert db_session.query(User).count() == 0

    def test_reset_requires_confirmation(self, app, db_session, admin):
        result = _invoke(app, "system", "reset-db")
        assert result.exit_code != 0
        assert "Refusing to reset without --yes" in result.output
        assert db_session.get(User, admin.id) is not None


class TestUserCommands:

    def test_create_and_list(self, app, db_session):
        result = _invoke(
            app,
            "users", "create",
            "--name", "Asha",
            "--email", "Asha@FieldOps.test",
            "--password", "Password123!",
            "--role", "Godown Incharge",
        )
        assert result.exit_code == 0, result.output
        user = db_session.query(User).filter_by(email="asha@fieldops.test").one()
        assert user.role == "Godown Incharge"

        listed = _invoke(app, "users", "list", "--role", "Godown Incharge")
        assert "asha@fieldops.test" in listed.output

    def test_create_weak_password(self, app, db_session):
        result = _invoke(
            app,
            "users", "create",
            "--name", "Asha",
            "--email", "asha@fieldops.test",
            "--password", "password",
        )
        assert result.exit_code != 0
        assert "Weak password" in result.output

    def test_list_marks_locked(self, app, db_session, make_user):
        make_user("Marketing Staff", account_locked=True, lock_until=utcnow() + timedelta(minutes=30))
        result = _invoke(app, "users", "list")
        assert "[locked]" in result.output

    def test_unlock(self, app, db_session, make_user):
        user = make_user("Marketing Staff", login_attempts=5, account_locked=True, lock_until=utcnow() + timedelta(minutes=30))
        result = _invoke(app, "users", "unlock", user.email)
        assert result.exit_code == 0, result.output

        db_session.refresh(user)
        assert user.account_locked is False
        assert user.login_attempts == 0
        assert user.lock_until is None

    def test_unlock_unknown(self, app, db_session):
        result = _invoke(app, "users", "unlock", "ghost@fieldops.test")
        assert result.exit_code != 0
