import os
import uuid

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CHANGE_FEED_WEBHOOKS"] = ""
os.environ["SUMMARIZER_URL"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import doctrack.models  # noqa: E402,F401
from doctrack.api.deps import get_db  # noqa: E402
from doctrack.core.enums import Role  # noqa: E402
from doctrack.core.records import Actor  # noqa: E402
from doctrack.db import Base  # noqa: E402
from doctrack.main import app  # noqa: E402
from doctrack.models.tracking import Department, Person  # noqa: E402

engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

DEPARTMENTS = ("IT", "HR", "FIN", "RECORDS", "MESSAGE CENTER")


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db_session):
    app.dependency_overrides[get_db] = lambda: db_session
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def departments(db_session):
    rows = [Department(name=name) for name in DEPARTMENTS]
    db_session.add_all(rows)
    db_session.commit()
    return {row.name: row for row in rows}


def make_person(db_session, department, name=None, role=Role.user, is_active=True):
    person = Person(
        name=name or f"user-{uuid.uuid4().hex[:8]}",
        email=f"{uuid.uuid4().hex[:10]}@example.com",
        role=role,
        department=department,
        is_active=is_active,
    )
    db_session.add(person)
    db_session.commit()
    db_session.refresh(person)
    return person


def as_actor(person) -> Actor:
    return Actor.model_validate(person)


@pytest.fixture()
def it_user(db_session, departments):
    return make_person(db_session, "IT", name="Ana IT")


@pytest.fixture()
def hr_user(db_session, departments):
    return make_person(db_session, "HR", name="Ben HR")


@pytest.fixture()
def fin_user(db_session, departments):
    return make_person(db_session, "FIN", name="Cy FIN")


@pytest.fixture()
def admin(db_session, departments):
    return make_person(db_session, "RECORDS", name="Root Admin", role=Role.admin)


@pytest.fixture()
def dispatcher(db_session, departments):
    return make_person(
        db_session, "MESSAGE CENTER", name="Dee Dispatch", role=Role.message_center
    )
