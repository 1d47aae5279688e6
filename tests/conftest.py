from __future__ import annotations

import pytest

from api import create_app
from api.config import TestingConfig
from models.db_storage import DBStorage
from models.user import ROLE_ADMIN, ROLE_FIELD_OFFICER, ROLE_VIEWER
from services import build_services
from services.email_service import MailDispatcher
from tests.support import FakeClock, InlineExecutor, RecordingMailer

PASSWORD = "pw12345678"


def _config() -> dict:
    return {key: getattr(TestingConfig, key) for key in dir(TestingConfig) if key.isupper()}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def storage():
    store = DBStorage("sqlite://")
    store.reload()
    yield store
    store.close()
    store.drop_all()


@pytest.fixture
def services(storage, mailer, clock):
    dispatcher = MailDispatcher(mailer, executor=InlineExecutor())
    return build_services(_config(), storage=storage, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def app(services):
    app = create_app("testing", services=services)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(services):
    counter = {"n": 0}

    def _make(role: str = ROLE_VIEWER, password: str = PASSWORD, **profile):
        counter["n"] += 1
        n = counter["n"]
        return services.credentials.create(
            email=profile.pop("email", f"user{n}@example.com"),
            username=profile.pop("username", f"user{n}"),
            password=password,
            full_name=profile.pop("full_name", f"User {n}"),
            role=role,
            **profile,
        )

    return _make


@pytest.fixture
def auth_headers(services):
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {services.tokens.issue_access_token(user)}"}

    return _headers


@pytest.fixture
def admin(make_user):
    return make_user(ROLE_ADMIN, email="admin@example.com", username="admin")


@pytest.fixture
def officer(make_user):
    return make_user(ROLE_FIELD_OFFICER, email="officer@example.com", username="officer")


@pytest.fixture
def viewer(make_user):
    return make_user(ROLE_VIEWER, email="viewer@example.com", username="viewer")
