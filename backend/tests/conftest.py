"""
This module contains pytest fixtures and configuration for testing.
"""
import os
import sys
import tempfile
import time
from decimal import Decimal
from pathlib import Path

import pytest

TEST_JWT_SECRET = "test-secret-with-enough-length-for-hs256"

# Settings are read at import time, so they must be in place before the app is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="gym-logs-")

# Add the backend directory to the system path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from database import Base, get_db
from models import Tenant, Profile, AppRole, Product, Student
from utils import derive_product_status
from config import LOW_STOCK_THRESHOLD


@pytest.fixture
def engine():
    """
    A fresh in-memory database per test. StaticPool keeps every session on the same connection.
    """
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """
    Create a test client whose requests use the test database.
    """
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def tenant(db):
    gym = Tenant(name="Academia Centro", primary_color="#ff6600")
    db.add(gym)
    db.commit()
    return gym


@pytest.fixture
def other_tenant(db):
    gym = Tenant(name="Academia Norte")
    db.add(gym)
    db.commit()
    return gym


@pytest.fixture
def admin_profile(db, tenant):
    profile = Profile(
        id="9f1c2d3e-0000-4000-8000-000000000001",
        tenant_id=tenant.id,
        full_name="Ana Admin",
        email="ana@centro.example",
        role=AppRole.ADMIN,
    )
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def staff_profile(db, tenant):
    profile = Profile(
        id="9f1c2d3e-0000-4000-8000-000000000002",
        tenant_id=tenant.id,
        full_name="Bruno Staff",
        email="bruno@centro.example",
        role=AppRole.STAFF,
    )
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def other_profile(db, other_tenant):
    profile = Profile(
        id="9f1c2d3e-0000-4000-8000-000000000003",
        tenant_id=other_tenant.id,
        full_name="Carla Norte",
        email="carla@norte.example",
        role=AppRole.ADMIN,
    )
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def student(db, tenant):
    s = Student(tenant_id=tenant.id, full_name="Carlos Silva")
    db.add(s)
    db.commit()
    return s


def make_token(subject: str, secret: str = TEST_JWT_SECRET, expires_in: int = 3600) -> str:
    claims = {
        "sub": subject,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_headers(profile: Profile) -> dict:
    return {"Authorization": f"Bearer {make_token(profile.id)}"}


def make_product(db, tenant, name, price, stock, is_active=True):
    product = Product(
        tenant_id=tenant.id,
        name=name,
        price=Decimal(price),
        stock_quantity=stock,
        status=derive_product_status(stock, LOW_STOCK_THRESHOLD),
        is_active=is_active,
    )
    db.add(product)
    db.commit()
    return product
