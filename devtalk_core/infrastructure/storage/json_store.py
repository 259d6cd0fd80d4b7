import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, List
from uuid import uuid4

from devtalk_core.config.settings import settings
from devtalk_core.domain.exceptions import BusinessError, SessionNotFound, StoreFailure
from devtalk_core.domain.models import Message, MessageRole, MessageStatus, Session, SessionStatus


def _to_iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _from_iso(raw: str) -> datetime:
    return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))


class JsonSessionStore:
    """基于文件系统的会话存储。

    目录结构::

        <root>/sessions/<session_id>/meta.json       会话元数据（原子替换写入）
        <root>/sessions/<session_id>/messages.jsonl  消息日志（逐行追加）
    """

    def __init__(self, root: str | Path | None = None):
        self._root = Path(root or settings.storage_root).resolve()
        self._sessions_root = self._root / "sessions"
        self._write_lock = threading.Lock()
        try:
            self._sessions_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreFailure(code="STORE_WRITE_ERROR", message=str(e))

    def create_session(self, created_at: datetime) -> Session:
        sid = f"s-{uuid4().hex}"
        sdir = self._sessions_root / sid
        try:
            sdir.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise StoreFailure(code="STORE_WRITE_ERROR", message=str(e))
        session = Session(session_id=sid, status=SessionStatus.OK, created_at=created_at)
        self._write_meta(sdir, session)
        return session

    def get_session(self, session_id: str) -> Session:
        sdir = self._sessions_root / session_id
        session = self._read_meta(sdir)
        session.messages.extend(self._read_messages(sdir))
        return session

    def append_message(self, session_id: str, message: Message) -> None:
        sdir = self._sessions_root / session_id
        session = self._read_meta(sdir)
        if not session.is_usable:
            # 与 Session.append 一致：非 OK 会话的日志保持为空
            raise StoreFailure(
                code="STORE_WRITE_ERROR",
                message=f"cannot append to session {session_id} in status {session.status.value}",
            )
        payload = {
            "id": message.id,
            "role": message.role.value,
            "content": message.content,
            "status": message.status.value,
            "created_at": _to_iso(message.created_at),
        }
        line = json.dumps(payload, ensure_ascii=False)
        try:
            with self._write_lock, (sdir / "messages.jsonl").open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise StoreFailure(code="STORE_WRITE_ERROR", message=str(e))

    def list_sessions(self) -> List[Session]:
        items: List[Session] = []
        for sdir in sorted(self._sessions_root.glob("*/")):
            if not (sdir / "meta.json").exists():
                continue
            try:
                items.append(self.get_session(sdir.name))
            except BusinessError:
                continue
        items.sort(key=lambda s: s.created_at)
        return items

    def _read_meta(self, sdir: Path) -> Session:
        meta_path = sdir / "meta.json"
        if not meta_path.exists():
            raise SessionNotFound(message=sdir.name)
        try:
            data = json.loads(meta_path.read_text(encoding="utf-8"))
            return Session(
                session_id=data["session_id"],
                status=SessionStatus(data["status"]),
                created_at=_from_iso(data["created_at"]),
            )
        except (OSError, ValueError, KeyError) as e:
            raise StoreFailure(code="STORE_READ_ERROR", message=str(e))

    def _read_messages(self, sdir: Path) -> List[Message]:
        msgs_path = sdir / "messages.jsonl"
        if not msgs_path.exists():
            return []
        try:
            lines = msgs_path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StoreFailure(code="STORE_READ_ERROR", message=str(e))
        items: List[Message] = []
        for line in lines:
            if not line.strip():
                continue
            try:
                items.append(self._to_message(json.loads(line)))
            except (ValueError, KeyError) as e:
                raise StoreFailure(code="STORE_READ_ERROR", message=f"corrupt message log in {sdir.name}: {e}")
        # 文件行序即对话顺序，不按时间重排
        return items

    def _write_meta(self, sdir: Path, session: Session) -> None:
        meta_path = sdir / "meta.json"
        tmp_path = sdir / f"meta.{uuid4().hex}.json.tmp"
        obj = {
            "session_id": session.session_id,
            "status": session.status.value,
            "created_at": _to_iso(session.created_at),
        }
        try:
            tmp_path.write_text(json.dumps(obj, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, meta_path)
        except OSError as e:
            raise StoreFailure(code="STORE_WRITE_ERROR", message=str(e))

    @staticmethod
    def _to_message(data: Dict[str, Any]) -> Message:
        return Message(
            id=data["id"],
            role=MessageRole(data["role"]),
            content=data.get("content") or "",
            status=MessageStatus(data["status"]),
            created_at=_from_iso(data["created_at"]),
        )
