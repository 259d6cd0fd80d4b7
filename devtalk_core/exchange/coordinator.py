"""交换协调器：一次“用户提交 -> AI 回复”的状态机。

    SUBMITTED -> DISPATCHED -> {COMPLETED, FAILED}

两条失败通道互不混用：
- 前置条件不满足（空内容、会话不可用）直接抛出 InvalidRequest / SessionUnavailable，
  日志不做任何修改；
- 用户消息落盘之后的 Responder 失败（异常、超时、空结果）被吸收为一条
  status=FAILED 的 AI 消息正常返回，不会抛给调用方，也不会自动重试。
"""

import logging
import threading
import time
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Any, Dict, Optional, Set, Tuple
from uuid import uuid4

from devtalk_core.config.settings import settings
from devtalk_core.domain.clock import Clock, SystemClock
from devtalk_core.domain.exceptions import (
    BusinessError,
    InvalidRequest,
    ResponderFailure,
    SessionNotFound,
    SessionUnavailable,
    StoreFailure,
)
from devtalk_core.domain.models import Message, MessageRole, MessageStatus, Session
from devtalk_core.domain.session import SessionStore
from devtalk_core.exchange.turnstile import TurnstileRegistry
from devtalk_core.infrastructure.logging.logger import logger
from devtalk_core.responders.base import Responder


class ExchangeCoordinator:
    def __init__(
        self,
        store: SessionStore,
        responder: Responder,
        clock: Optional[Clock] = None,
        timeout: Optional[float] = None,
        fallback_content: Optional[str] = None,
        turnstiles: Optional[TurnstileRegistry] = None,
    ):
        self._store = store
        self._responder = responder
        self._clock = clock or SystemClock()
        self._timeout = timeout if timeout is not None else settings.responder_timeout
        self._fallback_content = fallback_content or settings.fallback_content
        self._turnstiles = turnstiles or TurnstileRegistry()
        self._inflight: Set[threading.Thread] = set()
        self._inflight_lock = threading.Lock()

    @property
    def turnstiles(self) -> TurnstileRegistry:
        return self._turnstiles

    def submit(self, session_id: str, content: str, message_id: Optional[str] = None) -> Message:
        """提交一条用户消息并返回对应的 AI 消息。

        Args:
            session_id: 目标会话 ID，会话必须处于 OK 状态。
            content: 用户输入，去掉首尾空白后不能为空。
            message_id: 客户端分配的用户消息 ID（可选，缺省时由服务端生成）。

        Returns:
            追加到日志中的 AI 消息；status 为 OK 或 FAILED。

        Raises:
            InvalidRequest: 内容为空或只有空白。
            SessionUnavailable: 会话不存在、不可用，或存储无法读写。
            StoreFailure: 用户消息已落盘，但 AI 消息写入失败。
        """
        text = content.strip() if isinstance(content, str) else ""
        if not text:
            raise InvalidRequest(message="message content must not be empty", session_id=session_id)

        log_ctx: Dict[str, Any] = {"trace_id": f"tr-{uuid4().hex}", "session_id": session_id}
        with self._turnstiles.turn(session_id):
            start_time = time.monotonic()
            session = self._load_usable(session_id, log_ctx)

            user_msg = Message(
                id=message_id or f"m-{uuid4().hex}",
                role=MessageRole.USER,
                content=text,
                status=MessageStatus.OK,
                created_at=self._clock.now(),
            )
            try:
                self._store.append_message(session_id, user_msg)
            except (StoreFailure, SessionNotFound) as e:
                self._log(logging.ERROR, "Failed to store user message", log_ctx, error=e.code)
                raise SessionUnavailable(
                    message=f"session {session_id} cannot accept messages: {e.message}",
                    http_status=503,
                    session_id=session_id,
                )
            self._log(logging.INFO, "Stored user message", log_ctx, message_id=user_msg.id)

            history = session.snapshot() + (user_msg,)
            reply, error = self._dispatch(history, log_ctx)
            if error is None:
                ai_msg = self._ai_message(reply, MessageStatus.OK)
            else:
                ai_msg = self._ai_message(self._fallback_content, MessageStatus.FAILED)

            try:
                self._store.append_message(session_id, ai_msg)
            except (StoreFailure, SessionNotFound) as e:
                self._log(logging.ERROR, "Failed to store AI message", log_ctx, error=e.code, message_id=ai_msg.id)
                raise StoreFailure(
                    code="STORE_WRITE_ERROR",
                    message=f"reply for {user_msg.id} could not be stored: {e.message}",
                    session_id=session_id,
                )

            self._log(
                logging.INFO if error is None else logging.WARNING,
                "Completed exchange" if error is None else "Exchange failed",
                log_ctx,
                user_message_id=user_msg.id,
                ai_message_id=ai_msg.id,
                status=ai_msg.status.value,
                error=error,
                elapsed_seconds=round(time.monotonic() - start_time, 3),
            )
            return ai_msg

    def close(self, grace: float = 1.0) -> None:
        """等待仍在运行的 Responder 调用结束，最多 grace 秒；超时的调用不会被中断。"""
        deadline = time.monotonic() + grace
        with self._inflight_lock:
            workers = list(self._inflight)
        for worker in workers:
            worker.join(max(0.0, deadline - time.monotonic()))

    @property
    def inflight(self) -> int:
        with self._inflight_lock:
            return len(self._inflight)

    def _load_usable(self, session_id: str, log_ctx: Dict[str, Any]) -> Session:
        try:
            session = self._store.get_session(session_id)
        except SessionNotFound:
            self._log(logging.INFO, "Rejected submit for unknown session", log_ctx)
            raise SessionUnavailable(message=f"session {session_id} not found", session_id=session_id)
        except StoreFailure as e:
            self._log(logging.ERROR, "Failed to load session", log_ctx, error=e.code)
            raise SessionUnavailable(
                message=f"session {session_id} unavailable: {e.message}",
                http_status=503,
                session_id=session_id,
            )
        if not session.is_usable:
            self._log(logging.INFO, "Rejected submit for unusable session", log_ctx, status=session.status.value)
            raise SessionUnavailable(
                message=f"session {session_id} is {session.status.value}",
                http_status=409,
                session_id=session_id,
            )
        return session

    def _dispatch(self, history: Tuple[Message, ...], log_ctx: Dict[str, Any]) -> Tuple[str, Optional[str]]:
        """调用 Responder，返回 (回复内容, 错误码)；成功时错误码为 None。"""
        self._log(
            logging.INFO,
            "Calling responder",
            log_ctx,
            responder=getattr(self._responder, "name", type(self._responder).__name__),
            message_count=len(history),
        )
        future = self._start_call(history, log_ctx["trace_id"])
        try:
            reply = future.result(timeout=self._timeout)
        except FutureTimeout:
            self._log(logging.WARNING, "Responder timed out", log_ctx, timeout=self._timeout)
            return "", "RESPONDER_TIMEOUT"
        except BusinessError as e:
            self._log(logging.WARNING, "Responder failed", log_ctx, error=e.code, detail=e.message)
            return "", e.code
        except Exception as e:
            logger.warning(
                "Responder raised",
                exc_info=True,
                extra={"extra": {**log_ctx, "error": type(e).__name__}},
            )
            return "", ResponderFailure.default_code
        if not isinstance(reply, str) or not reply.strip():
            self._log(logging.WARNING, "Responder returned unusable content", log_ctx, result_type=type(reply).__name__)
            return "", "RESPONDER_BAD_RESULT"
        return reply, None

    def _start_call(self, history: Tuple[Message, ...], trace_id: str) -> Future:
        """在独立的守护线程上调用 Responder。

        每次调用一个线程，不共享工作线程：某个会话的 Responder 卡住超过超时，
        也不会让其他会话的调用排队。
        """
        future: Future = Future()
        future.set_running_or_notify_cancel()

        def run() -> None:
            try:
                future.set_result(self._responder.respond(history))
            except Exception as e:
                future.set_exception(e)
            finally:
                with self._inflight_lock:
                    self._inflight.discard(threading.current_thread())

        worker = threading.Thread(target=run, name=f"devtalk-responder-{trace_id[-8:]}", daemon=True)
        with self._inflight_lock:
            self._inflight.add(worker)
        worker.start()
        return future

    def _ai_message(self, content: str, status: MessageStatus) -> Message:
        return Message(
            id=f"m-{uuid4().hex}",
            role=MessageRole.AI,
            content=content,
            status=status,
            created_at=self._clock.now(),
        )

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
