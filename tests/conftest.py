import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_storefront.db")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront.main import app as fastapi_app
from storefront.database import Base
from storefront.documents import collection_of
from storefront.models import Document

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_temp.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db(monkeypatch):
    Base.metadata.create_all(bind=engine)
    # Every document read/write goes through this module
    monkeypatch.setattr("storefront.documents.SessionLocal", TestingSessionLocal)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client():
    with TestClient(fastapi_app) as c:
        yield c


def make_token(uid="user_1", role="USER", email="shopper@example.com"):
    return jwt.encode(
        {"sub": uid, "email": email, "role": role},
        os.environ["JWT_SECRET"],
        algorithm="HS256",
    )


@pytest.fixture
def user_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token(uid='admin_1', role='ADMIN')}"}


def store_raw(path, data):
    """Write a document without firing triggers."""
    db = TestingSessionLocal()
    db.add(Document(path=path, collection=collection_of(path), data=data))
    db.commit()
    db.close()
