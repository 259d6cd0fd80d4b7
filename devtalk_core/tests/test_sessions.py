import pytest

from devtalk_core.domain.exceptions import SessionNotFound, SessionUnavailable
from devtalk_core.domain.models import SessionStatus
from devtalk_core.exchange import ExchangeCoordinator, SessionService
from devtalk_core.infrastructure.storage.memory_store import InMemorySessionStore
from devtalk_core.tests.fakes import BrokenCreateStore, FakeClock, StaticResponder


def test_create_session_ok():
    clock = FakeClock()
    service = SessionService(InMemorySessionStore(), clock=clock)
    session = service.create()
    assert session.status is SessionStatus.OK
    assert session.messages == []
    assert session.created_at.year == 2024
    assert service.get(session.session_id).session_id == session.session_id


def test_sessions_never_share_ids():
    service = SessionService(InMemorySessionStore())
    ids = {service.create().session_id for _ in range(100)}
    assert len(ids) == 100


def test_store_failure_yields_failed_session():
    store = BrokenCreateStore()
    service = SessionService(store, clock=FakeClock())
    session = service.create()
    assert session.status is SessionStatus.FAILED
    assert session.messages == []
    with pytest.raises(SessionNotFound):
        service.get(session.session_id)

    responder = StaticResponder()
    coordinator = ExchangeCoordinator(store, responder, clock=FakeClock(), timeout=1.0)
    with pytest.raises(SessionUnavailable):
        coordinator.submit(session.session_id, "hello")
    assert responder.calls == []


def test_history_snapshot():
    store = InMemorySessionStore()
    service = SessionService(store, clock=FakeClock())
    sid = service.create().session_id
    ExchangeCoordinator(store, StaticResponder("hi there"), clock=FakeClock(), timeout=1.0).submit(sid, "hello")
    session, messages = service.history(sid)
    assert session.session_id == sid
    assert [m.content for m in messages] == ["hello", "hi there"]


def test_list_sessions_oldest_first():
    service = SessionService(InMemorySessionStore(), clock=FakeClock())
    ids = [service.create().session_id for _ in range(3)]
    assert [s.session_id for s in service.list()] == ids
