import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List
from uuid import uuid4

from devtalk_core.domain.exceptions import SessionNotFound, StoreFailure
from devtalk_core.domain.models import Message, Session, SessionStatus


class InMemorySessionStore:
    """进程内会话存储，进程退出即丢失。

    读取返回副本，调用方拿到的 Session 不会被后续追加影响。
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create_session(self, created_at: datetime) -> Session:
        sid = f"s-{uuid4().hex}"
        session = Session(session_id=sid, status=SessionStatus.OK, created_at=created_at)
        with self._lock:
            if sid in self._sessions:
                raise StoreFailure(code="STORE_WRITE_ERROR", message=f"duplicate session id {sid}")
            self._sessions[sid] = session
        return self._copy(session)

    def get_session(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(message=session_id)
            return self._copy(session)

    def append_message(self, session_id: str, message: Message) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(message=session_id)
            try:
                session.append(message)
            except ValueError as e:
                raise StoreFailure(code="STORE_WRITE_ERROR", message=str(e))

    def list_sessions(self) -> List[Session]:
        with self._lock:
            return [self._copy(s) for s in self._sessions.values()]

    @staticmethod
    def _copy(session: Session) -> Session:
        return replace(session, messages=list(session.messages))
