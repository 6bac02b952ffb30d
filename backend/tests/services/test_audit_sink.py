import pytest

from app.repositories import AuditRepository
from app.services.rbac import AuditEvent, DatabaseAuditSink, NullAuditSink


class _FailingSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def add(self, obj):
        return None

    async def flush(self):
        from sqlalchemy.exc import OperationalError

        raise OperationalError("INSERT INTO audit_logs", {}, Exception("database is locked"))


class TestDatabaseAuditSink:
    @pytest.mark.asyncio
    async def test_writes_event(self, session_factory, db_session):
        sink = DatabaseAuditSink(session_factory)
        await sink.record(
            AuditEvent(
                actor="5559990000",
                action="player.control",
                resource_type="player",
                resource_id="p-1",
                details={"action": "pause"},
                ip_address="10.0.0.1",
                user_agent="pytest",
            )
        )

        rows = await AuditRepository(db_session).list_recent(resource_id="p-1")
        assert len(rows) == 1
        assert rows[0].action == "player.control"
        assert rows[0].outcome == "success"
        assert rows[0].details == {"action": "pause"}
        assert rows[0].ip_address == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_failure_does_not_raise(self):
        sink = DatabaseAuditSink(lambda: _FailingSession())
        await sink.record(AuditEvent(actor="x", action="permission.grant", resource_type="player"))

    @pytest.mark.asyncio
    async def test_null_sink(self):
        assert await NullAuditSink().record(AuditEvent(actor="x", action="a", resource_type="player")) is None
