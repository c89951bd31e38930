import os

os.environ["UNILIB_DB"] = "sqlite://"
os.environ["UNILIB_AUTO_EXIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from unilibrary.core.database import Base, get_db
from unilibrary.core.security import create_access_token
from unilibrary.main import app
from unilibrary.services.catalog import CatalogService
from unilibrary.services.students import StudentService


@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_student(db, student_id="20240001", **overrides):
    data = {
        "student_id": student_id,
        "password": "secret123",
        "university_card_id": f"CARD-{student_id}",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": f"{student_id}@uni.example",
        "department": "Computer Science",
        "year_level": 2,
    }
    data.update(overrides)
    return StudentService(db).register(data)


def make_book(db, isbn="978-0000000001", copies=1, **overrides):
    data = {"title": "Test Book", "author": "Author", "isbn": isbn, "total_copies": copies}
    data.update(overrides)
    return CatalogService(db).create(data)


def auth_headers(subject, role):
    return {"Authorization": f"Bearer {create_access_token(subject, role)}"}


@pytest.fixture
def student(db):
    return make_student(db)


@pytest.fixture
def book(db):
    return make_book(db)


@pytest.fixture
def librarian_headers():
    return auth_headers("librarian", "LIBRARIAN")


@pytest.fixture
def assistant_headers():
    return auth_headers("assistant", "ASSISTANT")


@pytest.fixture
def admin_headers():
    return auth_headers("admin", "ADMIN")


@pytest.fixture
def student_headers(student):
    return auth_headers(student.student_id, "STUDENT")
