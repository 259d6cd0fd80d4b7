"""会话与消息交换的核心状态机。"""

from devtalk_core.exchange.coordinator import ExchangeCoordinator
from devtalk_core.exchange.sessions import SessionService
from devtalk_core.exchange.turnstile import Turnstile, TurnstileRegistry

__all__ = ["ExchangeCoordinator", "SessionService", "Turnstile", "TurnstileRegistry"]
