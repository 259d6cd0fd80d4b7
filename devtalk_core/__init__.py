"""DevTalk Core 顶层包。

提供最小的聊天会话交换：客户端创建会话、提交用户消息并获得 AI 回复，
每条消息带有 OK/PENDING/FAILED 状态，每个会话带有 CREATING/OK/FAILED 状态。
"""

from devtalk_core.api.service import DevTalkService, check_health
from devtalk_core.exchange import ExchangeCoordinator, SessionService

__all__ = ["DevTalkService", "ExchangeCoordinator", "SessionService", "check_health"]
