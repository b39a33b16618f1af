"""Tests de la création du super admin."""
import pytest

from tabrima.accounts import AccountError, create_super_admin, prompt_super_admin
from tabrima.models import User

from conftest import create_user, login


def _answers(*values):
    it = iter(values)
    return lambda prompt="": next(it)


class TestCreateSuperAdmin:

    def test_creates_account_that_can_log_in(self, app, client):
        with app.app_context():
            user = create_super_admin(" Boss@Tabrima.test ", "Amina", "Tabrima", "secret123")
            assert user.email == "boss@tabrima.test"
            assert user.is_admin and user.is_super_admin
            assert User.query.count() == 1
        assert login(client, "boss@tabrima.test").status_code == 200

    def test_duplicate_email_refused(self, app):
        create_user(app, "boss@tabrima.test")
        with app.app_context():
            with pytest.raises(AccountError, match="existe déjà"):
                create_super_admin("BOSS@tabrima.test", "Amina", "Tabrima", "secret123")

    @pytest.mark.parametrize("email, first, last, password", [
        ("boss@tabrima.test", "", "Tabrima", "secret123"),
        ("pas-un-email", "Amina", "Tabrima", "secret123"),
        ("boss@tabrima.test", "Amina", "Tabrima", "court"),
    ])
    def test_invalid_data_refused(self, app, email, first, last, password):
        with app.app_context():
            with pytest.raises(AccountError):
                create_super_admin(email, first, last, password)
            assert User.query.count() == 0


class TestPromptSuperAdmin:

    def test_asks_only_missing_fields(self):
        data = prompt_super_admin(
            first_name="Amina", last_name="Tabrima", password="secret123",
            ask=_answers("Boss@Tabrima.test"), ask_secret=_answers(),
        )
        assert data == {"first_name": "Amina", "last_name": "Tabrima",
                        "email": "boss@tabrima.test", "password": "secret123"}

    def test_retries_until_valid(self):
        messages = []
        data = prompt_super_admin(
            ask=_answers("", "Amina", "Tabrima", "invalide", "boss@tabrima.test"),
            ask_secret=_answers("abc", "secret123", "autre123", "secret123", "secret123"),
            say=messages.append,
        )
        assert data["first_name"] == "Amina"
        assert data["email"] == "boss@tabrima.test"
        assert data["password"] == "secret123"
        assert len(messages) == 2
