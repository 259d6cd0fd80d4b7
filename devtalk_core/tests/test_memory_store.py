from datetime import datetime, timezone

import pytest

from devtalk_core.domain.exceptions import SessionNotFound
from devtalk_core.domain.models import Message, MessageRole, MessageStatus, SessionStatus
from devtalk_core.infrastructure.storage.memory_store import InMemorySessionStore


NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_memory_store_create_and_append():
    store = InMemorySessionStore()
    session = store.create_session(NOW)
    assert session.status is SessionStatus.OK
    assert session.session_id.startswith("s-")
    assert session.messages == []

    msg = Message(id="m1", role=MessageRole.USER, content="hi", status=MessageStatus.OK, created_at=NOW)
    store.append_message(session.session_id, msg)
    loaded = store.get_session(session.session_id)
    assert loaded.messages == [msg]
    # 之前取到的副本不受影响
    assert session.messages == []


def test_memory_store_unique_ids():
    store = InMemorySessionStore()
    ids = {store.create_session(NOW).session_id for _ in range(50)}
    assert len(ids) == 50
    assert len(store.list_sessions()) == 50


def test_memory_store_not_found():
    store = InMemorySessionStore()
    with pytest.raises(SessionNotFound):
        store.get_session("missing")
    msg = Message(id="m1", role=MessageRole.USER, content="hi", status=MessageStatus.OK, created_at=NOW)
    with pytest.raises(SessionNotFound):
        store.append_message("missing", msg)
