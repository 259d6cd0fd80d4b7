"""Responder 集成层。

- base: Responder / ProviderClient 协议。
- registry: Provider 与模型配置。
- chat_client: OpenAI 兼容的 HTTP 客户端（kimi、glm）。
- provider_responder: 把 ProviderClient 包装为 Responder。
- echo: 离线回显实现。
"""

from typing import Optional

from devtalk_core.config.settings import settings
from devtalk_core.responders.base import ProviderClient, Responder
from devtalk_core.responders.chat_client import ChatCompletionsClient
from devtalk_core.responders.echo import EchoResponder
from devtalk_core.responders.provider_responder import ProviderResponder
from devtalk_core.responders.registry import get_provider_config


def create_provider(name: str) -> ProviderClient:
    """根据名称创建 Provider 客户端，未知名称抛出 KeyError。"""

    return ChatCompletionsClient(settings, get_provider_config(name))


def create_responder(name: Optional[str] = None) -> Responder:
    """根据名称创建 Responder，默认取配置中的 default_responder。"""

    responder_name = (name or getattr(settings, "default_responder", "echo")).lower()
    if responder_name == "echo":
        return EchoResponder()
    return ProviderResponder(
        client=create_provider(responder_name),
        model=settings.default_model,
        system_prompt=settings.system_prompt,
        temperature=settings.temperature,
        max_context_messages=settings.max_context_messages,
    )


__all__ = [
    "ChatCompletionsClient",
    "EchoResponder",
    "ProviderClient",
    "ProviderResponder",
    "Responder",
    "create_provider",
    "create_responder",
]
