"""把 LLM Provider 包装成 Responder。"""

import logging
from typing import List, Optional, Sequence

from devtalk_core.domain.exceptions import ResponderFailure
from devtalk_core.domain.models import Message, MessageRole, MessageStatus
from devtalk_core.infrastructure.logging.logger import logger
from devtalk_core.responders.base import ProviderClient
from devtalk_core.responders.chat_models import ChatMessage, ChatRequest


class ProviderResponder:
    """将会话历史转换为 ChatRequest 并调用 Provider。

    失败占位消息（status=FAILED）不会发给模型；
    上下文按 max_context_messages 从尾部截断，system 提示词总是放在最前。
    """

    def __init__(
        self,
        client: ProviderClient,
        model: str,
        system_prompt: Optional[str] = None,
        temperature: float = 0.3,
        max_context_messages: int = 20,
    ):
        self._client = client
        self._model = model
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._max_context = max_context_messages
        self.name = client.name

    def respond(self, history: Sequence[Message]) -> str:
        req = ChatRequest(
            provider=self._client.name,
            model=self._model,
            messages=self._build_messages(history),
            temperature=self._temperature,
        )
        result = self._client.chat(req)
        if not result.choices:
            raise ResponderFailure(code="EMPTY_CHOICES", message=f"{self.name} returned no choices")
        if result.usage:
            logger.log(
                logging.INFO,
                "Token usage",
                extra={"extra": {
                    "provider": self.name,
                    "prompt_tokens": result.usage.prompt_tokens,
                    "completion_tokens": result.usage.completion_tokens,
                    "total_tokens": result.usage.total_tokens,
                }},
            )
        return result.choices[0].message.content

    def _build_messages(self, history: Sequence[Message]) -> List[ChatMessage]:
        path = [m for m in history if m.status is MessageStatus.OK]
        if len(path) > self._max_context:
            path = path[-self._max_context:]
        messages: List[ChatMessage] = []
        if self._system_prompt:
            messages.append(ChatMessage(role="system", content=self._system_prompt))
        for m in path:
            role = "user" if m.role is MessageRole.USER else "assistant"
            messages.append(ChatMessage(role=role, content=m.content))
        return messages
