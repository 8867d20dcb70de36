# Overview: Pytest coverage for the Flask CLI command groups.

from utang.models import Store, StoreMembership, User
from conftest import DEFAULT_PASSWORD


class TestUsersCommands:
    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create", "--name", "Nena", "--email", "nena@example.com", "--password", DEFAULT_PASSWORD,
        ])
        assert "PASS Created user" in result.output
        assert db_session.query(User).filter_by(email="nena@example.com").count() == 1

        listed = runner.invoke(args=["users", "list"])
        assert "nena@example.com" in listed.output

    def test_weak_password_reported(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "users", "create", "--name", "Nena", "--email", "nena@example.com", "--password", "weak",
        ])
        assert "FAIL Password validation failed" in result.output
        assert db_session.query(User).count() == 0


class TestStoresCommands:
    def test_create_store_with_owner(self, app, db_session, user_one):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["stores", "create", "--owner-email", user_one.email, "--name", "Sari-Sari"])
        assert "PASS Created store" in result.output

        store = db_session.query(Store).filter_by(name="Sari-Sari").one()
        membership = db_session.query(StoreMembership).filter_by(store_id=store.id).one()
        assert membership.user_id == user_one.id
        assert membership.role == "OWNER"

        listed = runner.invoke(args=["stores", "list"])
        assert "Sari-Sari" in listed.output
        assert user_one.email in listed.output

    def test_unknown_owner(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "stores", "create", "--owner-email", "nobody@example.com", "--name", "X",
        ])
        assert "FAIL No user" in result.output
        assert db_session.query(Store).count() == 0


class TestSystemCommands:
    def test_init_db_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        assert runner.invoke(args=["system", "init-db"]).exit_code == 0
        assert runner.invoke(args=["system", "init-db"]).exit_code == 0
