import json
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from devtalk_core.domain.exceptions import SessionNotFound, StoreFailure
from devtalk_core.domain.models import Message, MessageRole, MessageStatus, SessionStatus
from devtalk_core.infrastructure.storage.json_store import JsonSessionStore


NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_json_store_create_and_messages():
    with tempfile.TemporaryDirectory() as d:
        root = Path(d) / ".storage"
        store = JsonSessionStore(root=root)
        session = store.create_session(NOW)
        assert (root / "sessions" / session.session_id / "meta.json").exists()

        user = Message(id="m1", role=MessageRole.USER, content="你好", status=MessageStatus.OK, created_at=NOW)
        # AI 消息时间戳故意早于用户消息，读取时仍按写入顺序返回
        ai = Message(
            id="m2",
            role=MessageRole.AI,
            content="(failed) please try again",
            status=MessageStatus.FAILED,
            created_at=NOW - timedelta(seconds=5),
        )
        store.append_message(session.session_id, user)
        store.append_message(session.session_id, ai)

        reopened = JsonSessionStore(root=root)
        loaded = reopened.get_session(session.session_id)
        assert loaded.status is SessionStatus.OK
        assert loaded.created_at == NOW
        assert [m.id for m in loaded.messages] == ["m1", "m2"]
        assert loaded.messages[0].content == "你好"
        assert loaded.messages[1].status is MessageStatus.FAILED
        assert loaded.messages[1].role is MessageRole.AI


def test_json_store_missing_session():
    with tempfile.TemporaryDirectory() as d:
        store = JsonSessionStore(root=Path(d))
        with pytest.raises(SessionNotFound):
            store.get_session("s-missing")
        msg = Message(id="m1", role=MessageRole.USER, content="x", status=MessageStatus.OK, created_at=NOW)
        with pytest.raises(SessionNotFound):
            store.append_message("s-missing", msg)


def test_json_store_corrupt_log_is_store_failure():
    with tempfile.TemporaryDirectory() as d:
        root = Path(d)
        store = JsonSessionStore(root=root)
        session = store.create_session(NOW)
        (root / "sessions" / session.session_id / "messages.jsonl").write_text("{not json\n", encoding="utf-8")
        with pytest.raises(StoreFailure) as exc:
            store.get_session(session.session_id)
        assert exc.value.code == "STORE_READ_ERROR"


def test_json_store_list_sessions():
    with tempfile.TemporaryDirectory() as d:
        store = JsonSessionStore(root=Path(d))
        first = store.create_session(NOW)
        second = store.create_session(NOW + timedelta(minutes=1))
        ids = [s.session_id for s in store.list_sessions()]
        assert ids == [first.session_id, second.session_id]


def test_json_store_refuses_append_to_failed_session():
    with tempfile.TemporaryDirectory() as d:
        root = Path(d)
        store = JsonSessionStore(root=root)
        session = store.create_session(NOW)
        meta_path = root / "sessions" / session.session_id / "meta.json"
        meta = json.loads(meta_path.read_text(encoding="utf-8"))
        meta["status"] = "FAILED"
        meta_path.write_text(json.dumps(meta), encoding="utf-8")
        msg = Message(id="m1", role=MessageRole.USER, content="x", status=MessageStatus.OK, created_at=NOW)
        with pytest.raises(StoreFailure):
            store.append_message(session.session_id, msg)
        loaded = store.get_session(session.session_id)
        assert loaded.status is SessionStatus.FAILED
        assert loaded.messages == []
