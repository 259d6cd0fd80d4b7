"""对外 API 服务模块。

提供与传输无关的函数接口，HTTP 绑定（http_app）和其他上层应用都通过这里调用核心。
所有返回值都是可直接 JSON 序列化的字典，状态值为大写规范形式。
"""

import threading
from typing import Any, Dict, List, Mapping, Optional

from devtalk_core.api.codec import message_to_dict, parse_user_message, session_to_dict
from devtalk_core.domain.clock import Clock
from devtalk_core.domain.session import SessionStore
from devtalk_core.exchange import ExchangeCoordinator, SessionService, TurnstileRegistry
from devtalk_core.infrastructure.logging.logger import logger
from devtalk_core.infrastructure.storage import create_store
from devtalk_core.responders import Responder, create_responder


HEALTH_OK = "ok"


class DevTalkService:
    """把 SessionService 与 ExchangeCoordinator 组装在一起，共享同一组会话闸门。"""

    def __init__(
        self,
        store: SessionStore,
        responder: Responder,
        clock: Optional[Clock] = None,
        timeout: Optional[float] = None,
        fallback_content: Optional[str] = None,
    ):
        turnstiles = TurnstileRegistry()
        self.sessions = SessionService(store, clock=clock, turnstiles=turnstiles)
        self.coordinator = ExchangeCoordinator(
            store,
            responder,
            clock=clock,
            timeout=timeout,
            fallback_content=fallback_content,
            turnstiles=turnstiles,
        )

    def create_session(self) -> Dict[str, Any]:
        """创建会话，返回 {sessionId, status, createdAt}；失败时 status 为 FAILED。"""
        return session_to_dict(self.sessions.create())

    def post_message(self, session_id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        """提交用户消息，返回 AI 消息（成功或失败占位）。

        Raises:
            InvalidRequest: 载荷不合法或内容为空。
            SessionUnavailable: 会话不存在或不可用。
        """
        message_id, content = parse_user_message(body)
        ai_msg = self.coordinator.submit(session_id, content, message_id=message_id)
        return message_to_dict(ai_msg)

    def list_sessions(self) -> List[Dict[str, Any]]:
        """按创建时间列出全部会话（不含消息）。"""
        return [session_to_dict(s) for s in self.sessions.list()]

    def get_session(self, session_id: str) -> Dict[str, Any]:
        """返回会话及其完整消息日志。"""
        session, messages = self.sessions.history(session_id)
        return session_to_dict(session, messages)

    def close(self) -> None:
        self.coordinator.close()


def check_health() -> str:
    """存活探针：无状态、无副作用。"""
    return HEALTH_OK


_service: Optional[DevTalkService] = None
_service_lock = threading.Lock()


def get_default_service() -> DevTalkService:
    """获取按配置组装的默认服务实例（单例）。"""
    global _service
    with _service_lock:
        if _service is None:
            store = create_store()
            responder = create_responder()
            _service = DevTalkService(store=store, responder=responder)
            logger.info(
                "Service initialised",
                extra={"extra": {"store": type(store).__name__, "responder": getattr(responder, "name", "")}},
            )
        return _service


def create_session() -> Dict[str, Any]:
    return get_default_service().create_session()


def post_message(session_id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
    return get_default_service().post_message(session_id, body)


def list_sessions() -> List[Dict[str, Any]]:
    return get_default_service().list_sessions()


def get_session(session_id: str) -> Dict[str, Any]:
    return get_default_service().get_session(session_id)
