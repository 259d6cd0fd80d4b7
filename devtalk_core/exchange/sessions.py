"""会话生命周期：创建与查询。"""

import logging
from typing import List, Optional, Tuple
from uuid import uuid4

from devtalk_core.domain.clock import Clock, SystemClock
from devtalk_core.domain.exceptions import StoreFailure
from devtalk_core.domain.models import Message, Session, SessionStatus
from devtalk_core.domain.session import SessionStore
from devtalk_core.exchange.turnstile import TurnstileRegistry
from devtalk_core.infrastructure.logging.logger import logger


class SessionService:
    """创建并读取会话。

    create() 不抛出存储异常：存储失败时返回一个 status=FAILED、日志为空、
    且从未落盘的会话，后续对它的任何提交都会得到 SessionUnavailable。
    没有原地重试，客户端需要重新创建会话。
    """

    def __init__(
        self,
        store: SessionStore,
        clock: Optional[Clock] = None,
        turnstiles: Optional[TurnstileRegistry] = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._turnstiles = turnstiles or TurnstileRegistry()

    def create(self) -> Session:
        created_at = self._clock.now()
        try:
            session = self._store.create_session(created_at)
        except StoreFailure as e:
            failed = Session(session_id=f"s-{uuid4().hex}", status=SessionStatus.FAILED, created_at=created_at)
            logger.error(
                "Session creation failed",
                extra={"extra": {"session_id": failed.session_id, "error": e.code, "detail": e.message}},
            )
            return failed
        logger.info("Created session", extra={"extra": {"session_id": session.session_id}})
        return session

    def get(self, session_id: str) -> Session:
        """返回会话；不存在时抛出 SessionNotFound。"""
        return self._store.get_session(session_id)

    def list(self) -> List[Session]:
        """按创建时间列出全部会话。"""
        return sorted(self._store.list_sessions(), key=lambda s: s.created_at)

    def history(self, session_id: str) -> Tuple[Session, Tuple[Message, ...]]:
        """在会话闸门内读取一致快照，不会看到只有用户消息、缺少回复的中间态。"""
        with self._turnstiles.turn(session_id):
            session = self._store.get_session(session_id)
            return session, session.snapshot()
