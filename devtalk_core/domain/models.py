"""会话与消息的领域模型。

- Message: 一轮对话中的一条消息，创建后完全不可变。
- Session: 一个会话上下文，持有按时间顺序追加的消息日志和建立状态。

状态值统一使用大写枚举；边界层负责大小写归一化。
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Tuple


class MessageRole(str, Enum):
    USER = "USER"
    AI = "AI"


class MessageStatus(str, Enum):
    OK = "OK"
    PENDING = "PENDING"
    FAILED = "FAILED"


class SessionStatus(str, Enum):
    """会话建立结果，与消息结果无关。"""

    CREATING = "CREATING"
    OK = "OK"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Message:
    """一条对话消息。

    - id: 发送方分配的唯一标识（用户消息由客户端给出，AI 消息由协调器生成）。
    - content: 文本内容，只有失败占位消息可以为空。
    - status: OK / PENDING / FAILED。交换失败时会追加一条新的 FAILED 消息，
      而不是修改原消息。
    - created_at: 由注入的 Clock 在构造时给出。
    """

    id: str
    role: MessageRole
    content: str
    status: MessageStatus
    created_at: datetime


@dataclass
class Session:
    """服务端跟踪的会话。

    messages 只允许追加，不允许重排或删除；FAILED 会话的日志恒为空。
    """

    session_id: str
    status: SessionStatus
    created_at: datetime
    messages: List[Message] = field(default_factory=list)

    @property
    def is_usable(self) -> bool:
        return self.status is SessionStatus.OK

    def append(self, message: Message) -> None:
        if not self.is_usable:
            raise ValueError(f"cannot append to session {self.session_id} in status {self.status.value}")
        self.messages.append(message)

    def snapshot(self) -> Tuple[Message, ...]:
        return tuple(self.messages)
