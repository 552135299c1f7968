import os

# Must be set before school_admin.database is imported
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_admin.config import ReportPolicy, get_policy
from school_admin.database import configure_sqlite, create_tables, get_db
from school_admin.main import app
from school_admin.models.student import Student

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def policy():
    return ReportPolicy()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_policy] = lambda: ReportPolicy()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def add_student(db):
    def _add(name, roll_number, class_label="3", email=None):
        student = Student(
            name=name,
            roll_number=roll_number,
            class_label=class_label,
            email=email or "{}@school.test".format(roll_number.lower()),
        )
        db.add(student)
        db.commit()
        return student
    return _add
