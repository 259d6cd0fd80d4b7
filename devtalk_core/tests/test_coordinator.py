"""ExchangeCoordinator 状态机测试。"""

import threading

import pytest

from devtalk_core.domain.exceptions import (
    ApiError,
    InvalidRequest,
    NetworkError,
    SessionUnavailable,
    StoreFailure,
)
from devtalk_core.domain.models import MessageRole, MessageStatus, Session, SessionStatus
from devtalk_core.exchange.coordinator import ExchangeCoordinator
from devtalk_core.infrastructure.storage.memory_store import InMemorySessionStore
from devtalk_core.tests.fakes import FailingResponder, FakeClock, StaticResponder


FALLBACK = "(failed) please try again"


def _setup(responder, timeout=2.0):
    store = InMemorySessionStore()
    clock = FakeClock()
    session = store.create_session(clock.now())
    coordinator = ExchangeCoordinator(store, responder, clock=clock, timeout=timeout, fallback_content=FALLBACK)
    return store, coordinator, session.session_id


def _log(store, sid):
    return [(m.role, m.content, m.status) for m in store.get_session(sid).messages]


def test_submit_success_appends_user_and_ai():
    responder = StaticResponder("hi there")
    store, coordinator, sid = _setup(responder)

    reply = coordinator.submit(sid, "hello")

    assert reply.role is MessageRole.AI
    assert reply.status is MessageStatus.OK
    assert reply.content == "hi there"
    assert _log(store, sid) == [
        (MessageRole.USER, "hello", MessageStatus.OK),
        (MessageRole.AI, "hi there", MessageStatus.OK),
    ]
    # Responder 收到的历史包含刚追加的用户消息
    assert [m.content for m in responder.calls[0]] == ["hello"]


def test_submit_passes_full_history_in_order():
    responder = StaticResponder("ok")
    store, coordinator, sid = _setup(responder)
    coordinator.submit(sid, "one")
    coordinator.submit(sid, "two")
    assert [m.content for m in responder.calls[1]] == ["one", "ok", "two"]
    assert len(store.get_session(sid).messages) == 4


def test_submit_uses_client_message_id_and_clock():
    store, coordinator, sid = _setup(StaticResponder("hi"))
    reply = coordinator.submit(sid, "  hello  ", message_id="1700000000000")
    user, ai = store.get_session(sid).messages
    assert user.id == "1700000000000"
    assert user.content == "hello"
    assert ai.id == reply.id and ai.id != user.id
    assert user.created_at < ai.created_at


@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
def test_submit_rejects_blank_content(content):
    responder = StaticResponder()
    store, coordinator, sid = _setup(responder)
    with pytest.raises(InvalidRequest):
        coordinator.submit(sid, content)
    assert _log(store, sid) == []
    assert responder.calls == []


def test_submit_unknown_session():
    responder = StaticResponder()
    store, coordinator, _ = _setup(responder)
    with pytest.raises(SessionUnavailable) as exc:
        coordinator.submit("s-missing", "hello")
    assert exc.value.http_status == 404
    assert responder.calls == []


def test_submit_failed_session_never_appends():
    responder = StaticResponder()
    store, coordinator, _ = _setup(responder)
    failed = Session(session_id="s-failed", status=SessionStatus.FAILED, created_at=FakeClock().now())
    store._sessions[failed.session_id] = failed

    with pytest.raises(SessionUnavailable) as exc:
        coordinator.submit(failed.session_id, "hello")
    assert exc.value.http_status == 409
    assert store.get_session(failed.session_id).messages == []
    assert responder.calls == []


@pytest.mark.parametrize(
    "exc",
    [
        NetworkError(code="NETWORK_ERROR", message="connection refused"),
        ApiError(code="API_ERROR", message="boom", http_status=502),
        RuntimeError("unexpected"),
    ],
)
def test_responder_failure_becomes_failed_message(exc):
    store, coordinator, sid = _setup(FailingResponder(exc))

    reply = coordinator.submit(sid, "ping")

    assert reply.status is MessageStatus.FAILED
    assert reply.role is MessageRole.AI
    assert reply.content == FALLBACK
    assert _log(store, sid) == [
        (MessageRole.USER, "ping", MessageStatus.OK),
        (MessageRole.AI, FALLBACK, MessageStatus.FAILED),
    ]


def test_responder_timeout_becomes_failed_message():
    release = threading.Event()

    class SlowResponder:
        name = "slow"

        def respond(self, history):
            release.wait(5)
            return "too late"

    store, coordinator, sid = _setup(SlowResponder(), timeout=0.05)
    try:
        reply = coordinator.submit(sid, "ping")
    finally:
        release.set()

    assert reply.status is MessageStatus.FAILED
    assert _log(store, sid) == [
        (MessageRole.USER, "ping", MessageStatus.OK),
        (MessageRole.AI, FALLBACK, MessageStatus.FAILED),
    ]


@pytest.mark.parametrize("bad", ["", "   ", None, 42])
def test_unusable_responder_result_is_failure(bad):
    store, coordinator, sid = _setup(StaticResponder(bad))
    reply = coordinator.submit(sid, "ping")
    assert reply.status is MessageStatus.FAILED
    assert reply.content == FALLBACK


def test_log_length_even_after_each_submit():
    outcomes = iter(["a", RuntimeError("x"), "c"])

    class MixedResponder:
        name = "mixed"

        def respond(self, history):
            item = next(outcomes)
            if isinstance(item, Exception):
                raise item
            return item

    store, coordinator, sid = _setup(MixedResponder())
    for text in ["one", "two", "three"]:
        coordinator.submit(sid, text)
        msgs = store.get_session(sid).messages
        assert len(msgs) % 2 == 0
        assert msgs[-2].role is MessageRole.USER and msgs[-2].status is MessageStatus.OK
        assert msgs[-1].role is MessageRole.AI
    assert [m.status for m in store.get_session(sid).messages[1::2]] == [
        MessageStatus.OK,
        MessageStatus.FAILED,
        MessageStatus.OK,
    ]


def test_user_append_failure_is_session_unavailable():
    class ReadOnlyStore(InMemorySessionStore):
        def append_message(self, session_id, message):
            raise StoreFailure(code="STORE_WRITE_ERROR", message="read only")

    store = ReadOnlyStore()
    responder = StaticResponder()
    sid = store.create_session(FakeClock().now()).session_id
    coordinator = ExchangeCoordinator(store, responder, clock=FakeClock(), timeout=1.0)

    with pytest.raises(SessionUnavailable) as exc:
        coordinator.submit(sid, "hello")
    assert exc.value.http_status == 503
    assert responder.calls == []


def test_ai_append_failure_raises_store_failure():
    class FlakyStore(InMemorySessionStore):
        def append_message(self, session_id, message):
            if message.role is MessageRole.AI:
                raise StoreFailure(code="STORE_WRITE_ERROR", message="disk full")
            super().append_message(session_id, message)

    store = FlakyStore()
    sid = store.create_session(FakeClock().now()).session_id
    coordinator = ExchangeCoordinator(store, StaticResponder("hi"), clock=FakeClock(), timeout=1.0)

    with pytest.raises(StoreFailure):
        coordinator.submit(sid, "hello")
    # 用户消息已经落盘，不会被撤回
    assert [m.content for m in store.get_session(sid).messages] == ["hello"]
