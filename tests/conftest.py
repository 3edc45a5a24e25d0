import itertools

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import quizroom.models as models
from quizroom.database import Base, get_db
from quizroom.main import app

_emails = itertools.count(1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: startup hooks would create tables on the configured database
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    """Register a user over HTTP and return (user dict, auth headers)."""

    def _make_user(role="student", first_name="Test", last_name="User", password="secret123"):
        email = f"{role}{next(_emails)}@example.com"
        resp = client.post(
            "/auth/register",
            json={
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "password": password,
                "role": role,
            },
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _make_user


@pytest.fixture
def teacher(make_user):
    return make_user("teacher", "Tess", "Teacher")


@pytest.fixture
def other_teacher(make_user):
    return make_user("teacher", "Otto", "Other")


@pytest.fixture
def student(make_user):
    return make_user("student", "Stu", "Dent")


@pytest.fixture
def classroom(client, teacher):
    _, headers = teacher
    resp = client.post("/classrooms", json={"name": "Algebra"}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
def db_teacher(db):
    user = models.User(
        first_name="Direct",
        last_name="Teacher",
        email="direct.teacher@example.com",
        hashed_password="x",
        role=models.Role.teacher,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
