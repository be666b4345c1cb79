import os

# must be set before anything under portal is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["DEV_BYPASS_ENABLED"] = "0"

import pytest
from fastapi.testclient import TestClient
from werkzeug.security import generate_password_hash

from portal.auth.models import AuthUser, Profile
from portal.auth.registry import SessionRegistry, get_registry
from portal.database import Base, SessionLocal, engine, init_db
from portal.employees.models import EmployeeRecord
from portal.main import app
from portal.salary.storage import ObjectStorage, get_storage

BYPASS = ("admin@gmail.com", "Admin@12")
PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"


@pytest.fixture(autouse=True)
def tables():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return ObjectStorage(root=tmp_path)


@pytest.fixture
def registry():
    return SessionRegistry(bypass_credentials=BYPASS)


@pytest.fixture
def client(registry, storage):
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def other_client(client):
    """A second browser against the same app and registry."""
    with TestClient(app) as c:
        yield c


def add_employee(db, name, code=None, status="active"):
    emp = EmployeeRecord(name=name, code=code, status=status)
    db.add(emp)
    db.commit()
    db.refresh(emp)
    return emp


def add_account(db, email, password, role="employee", employee_ref=None, name="Test User", department=None):
    user = AuthUser(email=email, password_hash=generate_password_hash(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    db.add(Profile(
        id=user.id,
        email=email,
        name=name,
        role=role,
        employee_ref=employee_ref,
        department=department,
    ))
    db.commit()
    return user


def login(client, email, password):
    return client.post("/auth/login", json={"email": email, "password": password})


def login_admin(client):
    resp = login(client, *BYPASS)
    assert resp.status_code == 200, resp.text
    return resp
