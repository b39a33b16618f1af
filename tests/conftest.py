"""
Fixtures pytest partagées.

Chaque test obtient sa propre base SQLite (fichier sous tmp_path) et son
propre dossier d'uploads.
"""
import pytest

from tabrima.apps import create_app
from tabrima.models import db, User

ADMIN_EMAIL = "admin@tabrima.test"
ADMIN_PASSWORD = "secret123"


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def make_app(tmp_path, db_url):
    """Factory: crée une app de test, avec surcharges de config optionnelles."""
    def _make(**overrides):
        cfg = {
            "SQLALCHEMY_DATABASE_URI": db_url,
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        }
        cfg.update(overrides)
        return create_app("testing", cfg)
    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    """Client anonyme."""
    return app.test_client()


def create_user(app, email, password=ADMIN_PASSWORD, **fields):
    fields.setdefault("first_name", "Amina")
    fields.setdefault("last_name", "Test")
    with app.app_context():
        user = User(email=email, **fields)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user.id


def login(client, email, password=ADMIN_PASSWORD):
    return client.post("/api/admin/login", json={"email": email, "password": password})


@pytest.fixture
def super_admin(app):
    return create_user(app, ADMIN_EMAIL, is_admin=True, is_super_admin=True)


@pytest.fixture
def admin_client(app, super_admin):
    """Client connecté en super admin."""
    c = app.test_client()
    r = login(c, ADMIN_EMAIL)
    assert r.status_code == 200
    return c
