import asyncio
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import BYPASS, add_account, add_employee, login
from portal.auth.models import AuthUser, Profile
from portal.auth.profiles import ProfileStore
from portal.auth.registry import SessionRegistry, get_registry
from portal.auth.service import AuthClient
from portal.errors import ProfileResolutionFailed, UpstreamRequestFailed
from portal.main import app


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_idle_portal_sessions_are_swept():
    clock = FakeClock()
    registry = SessionRegistry(idle_timeout=timedelta(minutes=10), clock=clock)
    abandoned = [registry.create() for _ in range(5)]
    assert len(registry) == 5

    clock.now += 11 * 60
    fresh = registry.create()
    assert len(registry) == 1
    assert registry.get(fresh.handle) is fresh
    assert all(registry.get(p.handle) is None for p in abandoned)


def test_recently_used_session_survives_sweep():
    clock = FakeClock()
    registry = SessionRegistry(idle_timeout=timedelta(minutes=10), clock=clock)
    kept = registry.create()

    clock.now += 8 * 60
    assert registry.get(kept.handle) is kept
    clock.now += 8 * 60
    registry.create()
    assert registry.get(kept.handle) is kept


def test_bypass_session_expires_when_idle(client):
    clock = FakeClock()
    registry = SessionRegistry(bypass_credentials=BYPASS, idle_timeout=timedelta(minutes=10), clock=clock)
    app.dependency_overrides[get_registry] = lambda: registry

    assert login(client, *BYPASS).status_code == 200
    assert client.get("/auth/me").status_code == 200

    clock.now += 11 * 60
    assert client.get("/auth/me").status_code == 401
    assert len(registry) == 0


def test_expired_logins_do_not_accumulate(client, db):
    add_account(db, "jane@example.com", "secret1")
    registry = SessionRegistry(auth_factory=lambda: AuthClient(token_ttl=timedelta(seconds=-1)))
    app.dependency_overrides[get_registry] = lambda: registry

    browsers = [TestClient(app) for _ in range(5)]
    for browser in browsers:
        assert login(browser, "jane@example.com", "secret1").status_code == 200
    assert len(registry) <= 1

    assert browsers[-1].get("/auth/me").status_code == 401
    assert len(registry) == 0


def test_failed_profile_creation_removes_credentials(client, db, monkeypatch):
    emp = add_employee(db, "Sam Poe")
    payload = {"email": "sam@example.com", "password": "secret1", "confirm_password": "secret1", "employee_id": emp.id}

    def broken(self, *args):
        raise UpstreamRequestFailed("Could not create profile")

    monkeypatch.setattr(ProfileStore, "_create", broken)
    assert client.post("/auth/signup", json=payload).status_code == 502
    assert db.query(AuthUser).count() == 0
    assert db.query(Profile).count() == 0

    monkeypatch.undo()
    retry = client.post("/auth/signup", json=payload)
    assert retry.status_code == 200
    assert login(client, "sam@example.com", "secret1").status_code == 200


def test_failed_refresh_signs_auth_client_out(db):
    user = add_account(db, "jane@example.com", "secret1", role="employee")
    registry = SessionRegistry()
    portal = registry.create()
    asyncio.run(portal.sign_in("jane@example.com", "secret1"))

    db.query(Profile).filter(Profile.id == user.id).update({"role": "admin"})
    db.commit()

    with pytest.raises(ProfileResolutionFailed):
        asyncio.run(portal.refresh())
    assert portal.auth.get_session() is None
    assert portal.context is None
