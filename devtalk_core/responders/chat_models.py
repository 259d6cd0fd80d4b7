"""LLM Provider 请求/响应模型。

ProviderResponder 把会话日志转换为 ChatRequest，
ChatCompletionsClient 负责在这些结构与厂商 JSON 之间转换。
"""

from dataclasses import dataclass
from typing import Literal, Optional, List


# 与 OpenAI / Moonshot / BigModel 的 role 字段对应
ChatRole = Literal["system", "user", "assistant"]


@dataclass
class ChatMessage:
    role: ChatRole
    content: str


@dataclass
class ChatRequest:
    """一次完整的聊天请求。"""

    provider: str  # 逻辑 Provider 名，如 "kimi"
    model: str  # 逻辑模型名，如 "devtalk-chat"（再由 registry 映射为真实模型名）
    messages: List[ChatMessage]
    temperature: float = 0.3
    top_p: float = 0.95
    max_tokens: Optional[int] = None


@dataclass
class ChatUsage:
    """Provider 返回的 token 统计信息（统一格式）。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatChoice:
    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


@dataclass
class ChatResult:
    """一次对话调用的最终结果。

    - choices: 一个或多个候选回答，目前只使用 index=0。
    - raw: 原始响应 JSON，用于调试。
    """

    provider: str
    model: str
    choices: List[ChatChoice]
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None
