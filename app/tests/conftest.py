import os

# Must be set before the app modules read their configuration
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["SHORT_LINK_BASE_URL"] = "https://nobull.fit"

import auth
import crud
import database
import pytest
from fastapi.testclient import TestClient
from main import app
from models import Base


@pytest.fixture
def db_session():
    """Creates a fresh database for each test."""
    Base.metadata.create_all(bind=database.engine)
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def client(db_session):
    """Creates a test client with overridden database dependency."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[database.get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user(db_session):
    return crud.create_user(
        db_session,
        email="jane@example.com",
        full_name="Jane Doe",
        password_hash=auth.hash_password("correct-horse"),
    )


@pytest.fixture
def auth_headers(user):
    token = auth.create_access_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}
