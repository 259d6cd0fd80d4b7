"""按会话串行化的先来先服务闸门。

threading.Lock 不保证唤醒顺序，这里用取号 + Condition 的方式，
保证同一会话上的调用严格按到达顺序依次执行。
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class Turnstile:
    def __init__(self):
        self._cond = threading.Condition()
        self._next_ticket = 0
        self._serving = 0

    def take(self) -> int:
        with self._cond:
            ticket = self._next_ticket
            self._next_ticket += 1
            return ticket

    def wait(self, ticket: int) -> None:
        with self._cond:
            while self._serving != ticket:
                self._cond.wait()

    def release(self) -> None:
        with self._cond:
            self._serving += 1
            self._cond.notify_all()

    @contextmanager
    def turn(self) -> Iterator[int]:
        ticket = self.take()
        self.wait(ticket)
        try:
            yield ticket
        finally:
            self.release()

    @property
    def waiting(self) -> int:
        """已取号但尚未完成的调用数（含正在执行的一个）。"""
        with self._cond:
            return self._next_ticket - self._serving


class TurnstileRegistry:
    """session_id -> Turnstile。

    闸门在第一次取号时创建，最后一个持号者离开时删除；
    取号与删除都在 _guard 下进行，空闲会话（包括不存在的 id）不占内存。
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._turnstiles: Dict[str, Turnstile] = {}

    @contextmanager
    def turn(self, session_id: str) -> Iterator[int]:
        with self._guard:
            ts = self._turnstiles.get(session_id)
            if ts is None:
                ts = Turnstile()
                self._turnstiles[session_id] = ts
            ticket = ts.take()
        ts.wait(ticket)
        try:
            yield ticket
        finally:
            with self._guard:
                ts.release()
                if ts.waiting == 0:
                    del self._turnstiles[session_id]

    def waiting(self, session_id: str) -> int:
        with self._guard:
            ts = self._turnstiles.get(session_id)
            return ts.waiting if ts is not None else 0

    def __len__(self) -> int:
        with self._guard:
            return len(self._turnstiles)
