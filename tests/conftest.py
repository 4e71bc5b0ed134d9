"""
Shared fixtures: an app bound to a throwaway SQLite file, a test client and a
provisioned manager.

The database is a file (not :memory:) so worker threads in the concurrency
tests share it through their own connections.
"""
import pytest

from app import create_app
from models import db
from models.manager import Manager
from security.password import hash_password

MANAGER_LOGIN = "alice"
MANAGER_PASSWORD = "correct-horse-battery"


def make_app(db_path, busy_timeout=30):
    """App on a SQLite file; busy_timeout is how long a writer waits for the lock."""
    return create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(db_path),
        "SQLALCHEMY_ENGINE_OPTIONS": {
            "connect_args": {"check_same_thread": False, "timeout": busy_timeout},
        },
        "JWT_SECRET": "test-jwt-secret-with-enough-length",
        "BCRYPT_ROUNDS": 4,
        "MAX_LOGIN_ATTEMPTS": 3,
        "BLACKLIST_UNKNOWN_LOGIN": True,
        "BLACKLIST_TTL_SECONDS": None,
    })


@pytest.fixture
def app(tmp_path):
    app = make_app(tmp_path / "phonebook-test.db")
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def manager_id(app):
    with app.app_context():
        manager = Manager(login=MANAGER_LOGIN, password_hash=hash_password(MANAGER_PASSWORD))
        db.session.add(manager)
        db.session.commit()
        return manager.id


@pytest.fixture
def login_body():
    """Builds a /managers/logins payload; override any field by keyword."""
    def _body(**overrides):
        body = {
            "login": MANAGER_LOGIN,
            "password": MANAGER_PASSWORD,
            "device": "dev1",
            "ip_address": "1.2.3.4",
            "date_of_login": "2026-10-19T09:30:00",
        }
        body.update(overrides)
        return body
    return _body


@pytest.fixture
def auth_headers(client, manager_id, login_body):
    resp = client.post("/managers/logins", json=login_body(ip_address="10.9.9.9"))
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}
