"""Responder 抽象接口。

交换协调器不关心回复是如何生成的，只依赖此协议：
给定包含最新用户消息在内的完整有序历史，返回 AI 回复文本，或抛出异常。
任何异常、超时或空结果都会被协调器记录为一条 FAILED 的 AI 消息。
"""

from typing import Protocol, Sequence

from devtalk_core.domain.models import Message
from devtalk_core.responders.chat_models import ChatRequest, ChatResult


class Responder(Protocol):
    name: str

    def respond(self, history: Sequence[Message]) -> str:
        ...


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    - name: Provider 名称，用于日志。
    - chat(req): 执行一次非流式对话调用，返回统一的 ChatResult。
    """

    name: str

    def chat(self, req: ChatRequest) -> ChatResult:
        ...
