import json
import logging

import httpx
import pytest

from quizbuilder_backend.permissions.audit import AuditEntry, HttpAuditSink, LoggingAuditSink, NullAuditSink
from quizbuilder_backend.permissions.core import AccessControl, create_access_control
from quizbuilder_backend.permissions.principal import ResourceType
from quizbuilder_backend.settings import settings
from quizbuilder_backend.tests.conftest import (
    BASE_URL,
    RecordingTransport,
    has_access_transport,
    make_remote_client,
)


def _entry(**overrides) -> AuditEntry:
    values = dict(
        user_id="u1",
        tenant_id="tenant-a",
        resource_type=ResourceType.QUIZ,
        resource_id="quiz-1",
        action="read",
        allowed=True,
    )
    values.update(overrides)
    return AuditEntry.from_decision(**values)


class TestAuditEntry:

    def test_from_decision(self):
        entry = _entry(allowed=False)

        assert entry.resource_type == "quiz"
        assert entry.result == "denied"
        assert entry.user_agent == "quizbuilder-backend"
        assert entry.timestamp.tzinfo is not None

    def test_success(self):
        assert _entry().result == "success"


class TestHttpAuditSink:

    @pytest.mark.asyncio
    async def test_posts_entry(self):
        transport = RecordingTransport(lambda request: httpx.Response(201, json={"id": "log-1"}))
        sink = HttpAuditSink(client=httpx.AsyncClient(base_url=BASE_URL, transport=transport), token="secret")

        await sink.record(_entry())

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/audit/log"
        assert request.headers["Authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body["user_id"] == "u1"
        assert body["resource_type"] == "quiz"
        assert body["result"] == "success"

    @pytest.mark.asyncio
    async def test_http_error_is_logged(self, caplog):
        transport = RecordingTransport(lambda request: httpx.Response(500))
        sink = HttpAuditSink(client=httpx.AsyncClient(base_url=BASE_URL, transport=transport), token="")

        await sink.record(_entry())

        assert "Authorization" not in transport.requests[0].headers
        assert "HTTP 500" in caplog.text

    @pytest.mark.asyncio
    async def test_transport_error_is_swallowed(self, caplog):

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        sink = HttpAuditSink(client=httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler)))

        await sink.record(_entry())

        assert "Failed to log audit entry" in caplog.text


class TestOtherSinks:

    @pytest.mark.asyncio
    async def test_logging_sink(self, caplog):
        caplog.set_level(logging.INFO, logger="quizbuilder_backend.audit")

        await LoggingAuditSink().record(_entry(allowed=False))

        assert "access denied: user=u1 tenant=tenant-a read quiz/quiz-1" in caplog.text

    @pytest.mark.asyncio
    async def test_null_sink(self):
        assert await NullAuditSink().record(_entry()) is None


class TestCreateAccessControl:

    @pytest.mark.asyncio
    async def test_defaults_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "SHARED_VERIFICATION_CACHE", False)
        monkeypatch.setattr(settings, "AUDIT_ENABLED", True)

        access = await create_access_control()

        assert isinstance(access, AccessControl)
        assert isinstance(access.audit_sink, HttpAuditSink)
        assert access.cache.shared is None

    @pytest.mark.asyncio
    async def test_audit_disabled(self, monkeypatch):
        monkeypatch.setattr(settings, "AUDIT_ENABLED", False)
        monkeypatch.setattr(settings, "SHARED_VERIFICATION_CACHE", False)

        access = await create_access_control()

        assert isinstance(access.audit_sink, NullAuditSink)

    @pytest.mark.asyncio
    async def test_shared_cache(self, monkeypatch):
        shared = object()

        async def fake_redis_client():
            return shared

        monkeypatch.setattr(settings, "SHARED_VERIFICATION_CACHE", True)
        monkeypatch.setattr("quizbuilder_backend.permissions.core.get_redis_client", fake_redis_client)

        access = await create_access_control()

        assert access.cache.shared is shared


class TestSinkLifecycle:

    @pytest.mark.asyncio
    async def test_access_control_closes_audit_client(self):
        audit_client = httpx.AsyncClient(
            base_url=BASE_URL,
            transport=RecordingTransport(lambda request: httpx.Response(201)),
        )
        access = AccessControl(
            client=make_remote_client(has_access_transport()),
            audit_sink=HttpAuditSink(client=audit_client),
        )

        await access.aclose()

        assert audit_client.is_closed
        assert access.client.client.is_closed

    @pytest.mark.asyncio
    async def test_default_sinks_close_quietly(self):
        assert await NullAuditSink().aclose() is None
        assert await LoggingAuditSink().aclose() is None
