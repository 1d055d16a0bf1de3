"""
Shared fixtures: in-memory database, API client and users
"""
import os

# Must be set before any upcora module reads the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = "redis://127.0.0.1:1/0"
os.environ["UPCORA_GENERATION_DELAY"] = "0"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from upcora.auth import create_access_token, get_password_hash
from upcora.db import engine
from upcora.main import app
from upcora.middleware.rate_limit import limiter
from upcora.models import User, UserRole
from upcora.services.cache import cache
from tests.documents import STUDY_TEXT


@pytest.fixture(autouse=True)
def fresh_state():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    cache.clear_pattern("*")
    limiter.enabled = False
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


def _create_user(email: str, role: UserRole = UserRole.USER, name: str = None) -> User:
    with Session(engine) as s:
        user = User(email=email, name=name, hashed_password=get_password_hash("secret123"), role=role)
        s.add(user)
        s.commit()
        s.refresh(user)
        return user


def _headers_for(user: User) -> dict:
    token = create_access_token(str(user.id), role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user():
    return _create_user("alice@upcora.io", name="Alice")


@pytest.fixture
def auth_headers(user):
    return _headers_for(user)


@pytest.fixture
def other_headers():
    return _headers_for(_create_user("bob@upcora.io", name="Bob"))


@pytest.fixture
def admin_headers():
    return _headers_for(_create_user("root@upcora.io", role=UserRole.ADMIN, name="Root"))


@pytest.fixture
def study_text():
    return STUDY_TEXT
