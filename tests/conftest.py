import os

os.environ["ENV"] = "test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import app.models  # noqa: E402,F401
from app.auth.tokens import issue_token  # noqa: E402
from app.db import Base, SessionLocal, engine, get_db  # noqa: E402
from app.main import create_app  # noqa: E402

pytest_plugins = [
    "tests.fixtures.user_fixtures",
    "tests.fixtures.conversation_fixtures",
    "tests.fixtures.realtime_fixtures",
    "tests.fixtures.webhook_fixtures",
]


class RecordingDispatcher:
    """Collects emitted domain events instead of posting them."""

    def __init__(self):
        self.events = []

    def emit(self, event, payload):
        self.events.append((str(event), payload))

    @property
    def names(self):
        return [name for name, _ in self.events]

    def payloads(self, event):
        return [payload for name, payload in self.events if name == event]


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture(scope="function")
def helpdesk_app(db, dispatcher):
    application = create_app(testing=True)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    application.dependency_overrides[get_db] = override_get_db
    application.state.dispatcher = dispatcher
    yield application
    application.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(helpdesk_app):
    with TestClient(helpdesk_app) as c:
        yield c


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user."""

    def _headers(user):
        return {"Authorization": f"Bearer {issue_token(user)}"}

    return _headers
