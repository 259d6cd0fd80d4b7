"""时间来源。

消息与会话的 created_at 都从注入的 Clock 获取，测试可以换成固定时钟。
"""

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """返回当前 UTC 时间。"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
