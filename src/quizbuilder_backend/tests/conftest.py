"""
Pytest configuration and fixtures for all tests.
"""

import json
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizbuilder_backend.client.access_client import RemoteAccessClient
from quizbuilder_backend.database import get_db
from quizbuilder_backend.model import Base
from quizbuilder_backend.permissions.auth import encode_token
from quizbuilder_backend.permissions.audit import AuditSink
from quizbuilder_backend.permissions.cache import VerificationCache
from quizbuilder_backend.permissions.core import AccessControl
from quizbuilder_backend.permissions.principal import Actor

BASE_URL = "http://quizbuilder.test"


# ============================================================================
# Actors
# ============================================================================

def make_actor(user_id: str, role: str, tenant_id: Optional[str] = "tenant-a", tier: Optional[str] = None) -> Actor:
    return Actor(id=user_id, role=role, tenant_id=tenant_id, subscription_tier=tier)


@pytest.fixture
def super_admin():
    return make_actor("admin-1", "super_admin", tenant_id="tenant-root")


@pytest.fixture
def instructor():
    return make_actor("instructor-1", "instructor")


@pytest.fixture
def other_instructor():
    return make_actor("instructor-2", "instructor")


@pytest.fixture
def student():
    return make_actor("student-1", "student")


# ============================================================================
# Remote store
# ============================================================================

class RecordingTransport(httpx.MockTransport):
    """MockTransport remembering every request it served"""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)

    @property
    def count(self) -> int:
        return len(self.requests)

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def has_access_transport(has_access: bool = True) -> RecordingTransport:
    return RecordingTransport(lambda request: httpx.Response(200, json={"hasAccess": has_access}))


def make_remote_client(transport: httpx.MockTransport, token: Optional[str] = "") -> RemoteAccessClient:
    return RemoteAccessClient(
        base_url=BASE_URL,
        token=token,
        client=httpx.AsyncClient(base_url=BASE_URL, transport=transport),
    )


class MemoryAuditSink(AuditSink):

    def __init__(self):
        self.entries = []

    async def record(self, entry) -> None:
        self.entries.append(entry)


class FailingAuditSink(AuditSink):

    async def record(self, entry) -> None:
        raise RuntimeError("audit store unavailable")


@pytest.fixture
def transport():
    return has_access_transport(True)


@pytest.fixture
def audit_sink():
    return MemoryAuditSink()


@pytest.fixture
def access(transport, audit_sink):
    return AccessControl(
        client=make_remote_client(transport),
        cache=VerificationCache(ttl_seconds=300),
        audit_sink=audit_sink,
    )


# ============================================================================
# Database and API
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session(engine):
    """Create a new database session for a test."""
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@asynccontextmanager
async def _no_lifespan(app):
    yield


@pytest.fixture
def client(engine):
    from quizbuilder_backend.server import create_app

    app = create_app(lifespan_handler=_no_lifespan)
    TestingSession = sessionmaker(bind=engine, autoflush=False)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client


def actor_headers(actor: Actor) -> dict:
    token = encode_token(actor.id, actor.tenant_id, actor.role, plan=actor.subscription_tier)
    return {"Authorization": f"Bearer {token}"}
