import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from sse_starlette.sse import AppStatus


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from main import app
from routes.dependencies import (
    clerk_auth,
    get_ai_service,
    get_clerk_client,
    get_contact_store,
    get_user_store,
)
from services.auth_service import AuthContext


TEST_USER_HEADER = "X-Test-User"


class Clock:
    """Strictly increasing timestamps so updated_at always moves forward"""

    def __init__(self) -> None:
        self._now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


class FakeUserStore:
    def __init__(self, clock: Clock) -> None:
        self.rows = {}
        self._clock = clock

    def get_by_clerk_id(self, clerk_user_id: str):
        row = self.rows.get(clerk_user_id)
        return dict(row) if row else None

    def upsert(self, clerk_user_id: str, email: Optional[str]):
        now = self._clock()
        row = self.rows.get(clerk_user_id)
        if row is None:
            row = {
                "id": uuid.uuid4(),
                "clerk_user_id": clerk_user_id,
                "email": email,
                "created_at": now,
                "updated_at": now,
            }
            self.rows[clerk_user_id] = row
        else:
            row.update(email=email, updated_at=now)
        return dict(row)


class FakeContactStore:
    def __init__(self, clock: Clock) -> None:
        self.rows = {}
        self._clock = clock

    def _owned(self, contact_id: str, user_id: str):
        row = self.rows.get(contact_id)
        if row is None or str(row["user_id"]) != str(user_id):
            return None
        return row

    def list_contacts(self, user_id: str):
        return [dict(row) for row in self.rows.values() if str(row["user_id"]) == str(user_id)]

    def get_contact(self, contact_id: str, user_id: str):
        row = self._owned(contact_id, user_id)
        return dict(row) if row else None

    def create_contact(self, user_id: str, data):
        now = self._clock()
        row = {
            "id": uuid.uuid4(),
            "user_id": uuid.UUID(str(user_id)),
            "name": data["name"],
            "birthday_year": data.get("birthday_year"),
            "birthday_month": data["birthday_month"],
            "birthday_day": data["birthday_day"],
            "notes": data.get("notes"),
            "created_at": now,
            "updated_at": now,
        }
        self.rows[str(row["id"])] = row
        return dict(row)

    def update_contact(self, contact_id: str, user_id: str, changes):
        row = self._owned(contact_id, user_id)
        if row is None:
            return None
        row.update(changes)
        row["updated_at"] = self._clock()
        return dict(row)

    def delete_contact(self, contact_id: str, user_id: str) -> bool:
        if self._owned(contact_id, user_id) is None:
            return False
        del self.rows[contact_id]
        return True


class FakeClerkClient:
    def __init__(self) -> None:
        self.emails = {}
        self.fail = False

    def get_primary_email(self, user_id: str):
        if self.fail:
            raise RuntimeError("clerk unreachable")
        return self.emails.get(user_id)


async def header_auth(request: Request) -> Optional[AuthContext]:
    user_id = request.headers.get(TEST_USER_HEADER)
    return AuthContext(user_id=user_id) if user_id else None


def as_user(clerk_user_id: str) -> dict:
    return {TEST_USER_HEADER: clerk_user_id}


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def user_store(clock):
    return FakeUserStore(clock)


@pytest.fixture
def contact_store(clock):
    return FakeContactStore(clock)


@pytest.fixture
def clerk_client():
    return FakeClerkClient()


@pytest.fixture
def client(user_store, contact_store, clerk_client):
    app.dependency_overrides[clerk_auth] = header_auth
    app.dependency_overrides[get_user_store] = lambda: user_store
    app.dependency_overrides[get_contact_store] = lambda: contact_store
    app.dependency_overrides[get_clerk_client] = lambda: clerk_client
    # Each TestClient request runs on a fresh event loop
    AppStatus.should_exit_event = None
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def override_ai_service():
    def _override(service):
        app.dependency_overrides[get_ai_service] = lambda: service
    return _override
