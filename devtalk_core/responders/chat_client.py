"""OpenAI 兼容 chat/completions Provider 适配器。

Kimi（Moonshot）与 GLM（BigModel）的接口风格一致：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>

本模块负责：

1. 接收统一的 ChatRequest，转换为厂商请求 JSON。
2. 调用 HTTP 接口并把网络/API 异常包装为业务异常。
3. 将响应 JSON 解析为统一的 ChatResult。
"""

from typing import Any, Dict, Optional

import httpx

from devtalk_core.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from devtalk_core.responders.chat_models import (
    ChatChoice,
    ChatMessage,
    ChatRequest,
    ChatResult,
    ChatUsage,
)
from devtalk_core.responders.registry import ModelConfig, ProviderConfig


class ChatCompletionsClient:
    """单个 Provider 的客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - chat: 对外统一调用入口，返回 ChatResult。
    """

    def __init__(self, settings, provider: ProviderConfig):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = settings
        self._provider = provider
        self.name = provider.name

    def chat(self, req: ChatRequest) -> ChatResult:
        api_key = self._api_key()
        if not api_key:
            # 配置缺失走 ValidationError，协调器会把它记录为失败回复
            raise ValidationError(
                code="MISSING_API_KEY",
                message=f"{self._provider.api_key_field.upper()} not set",
            )
        try:
            model_cfg = self._provider.models[req.model]
        except KeyError:
            raise ValidationError(code="UNKNOWN_MODEL", message=f"{self.name} has no model {req.model!r}")
        payload = self._build_payload(req, model_cfg)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    f"{self._base_url()}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e), provider=self.name)
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message=f"{self.name} rate limit", provider=self.name)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=502, upstream_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise ApiError(code="API_BAD_RESPONSE", message=str(e), http_status=502)
        return self._parse_response(data, req)

    def _api_key(self) -> Optional[str]:
        return getattr(self._settings, self._provider.api_key_field, None)

    def _base_url(self) -> str:
        base = getattr(self._settings, self._provider.base_url_field, None) or self._provider.base_url
        return base.rstrip("/")

    def _build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> Dict[str, Any]:
        """将 ChatRequest 转成厂商所需的请求 JSON。"""

        return {
            "model": model_cfg.provider_model,
            "messages": [{"role": m.role, "content": m.content} for m in req.messages],
            "temperature": req.temperature if req.temperature is not None else model_cfg.default_temperature,
            "max_tokens": req.max_tokens or model_cfg.max_tokens,
            "top_p": req.top_p,
            "stream": False,
        }

    def _parse_response(self, data: Dict[str, Any], req: ChatRequest) -> ChatResult:
        choices: list[ChatChoice] = []
        for i, ch in enumerate(data.get("choices") or []):
            msg = ch.get("message") or {}
            choices.append(
                ChatChoice(
                    index=ch.get("index", i),
                    message=ChatMessage(
                        role=msg.get("role") or "assistant",
                        content=msg.get("content") or "",
                    ),
                    finish_reason=ch.get("finish_reason"),
                )
            )
        usage_raw = data.get("usage") or {}
        usage = None
        if usage_raw:
            usage = ChatUsage(
                prompt_tokens=usage_raw.get("prompt_tokens", 0),
                completion_tokens=usage_raw.get("completion_tokens", 0),
                total_tokens=usage_raw.get("total_tokens", 0),
            )
        return ChatResult(provider=self.name, model=req.model, choices=choices, usage=usage, raw=data)
