from datetime import datetime
from typing import List, Protocol

from .models import Message, Session


class SessionStore(Protocol):
    """会话存储协议。

    create_session / append_message 失败时抛出 StoreFailure；
    get_session 找不到会话时抛出 SessionNotFound。
    """

    def create_session(self, created_at: datetime) -> Session:
        ...

    def get_session(self, session_id: str) -> Session:
        ...

    def append_message(self, session_id: str, message: Message) -> None:
        ...

    def list_sessions(self) -> List[Session]:
        ...
