from typing import Sequence

from devtalk_core.domain.exceptions import ResponderFailure
from devtalk_core.domain.models import Message, MessageRole


class EchoResponder:
    """离线 Responder：回显最近一条用户消息，用于本地联调前端。"""

    name = "echo"

    def __init__(self, prefix: str = "echo: "):
        self._prefix = prefix

    def respond(self, history: Sequence[Message]) -> str:
        for m in reversed(history):
            if m.role is MessageRole.USER:
                return f"{self._prefix}{m.content}"
        raise ResponderFailure(code="NO_USER_MESSAGE", message="history has no user message")
