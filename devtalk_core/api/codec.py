"""边界层的载荷转换。

核心只认大写的枚举值；客户端可能发送 "failed"、"FAILED" 或 " Ok "，
这里统一归一化，输出时一律使用大写规范值。
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Type, TypeVar

from devtalk_core.domain.exceptions import InvalidRequest
from devtalk_core.domain.models import Message, MessageRole, MessageStatus, Session

E = TypeVar("E", bound=Enum)


def _parse_enum(enum_cls: Type[E], raw: Any, field: str) -> E:
    if isinstance(raw, enum_cls):
        return raw
    if not isinstance(raw, str):
        raise InvalidRequest(message=f"{field} must be a string", field=field)
    try:
        return enum_cls(raw.strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidRequest(message=f"unknown {field} {raw!r}; expected one of {allowed}", field=field)


def parse_message_status(raw: Any) -> MessageStatus:
    return _parse_enum(MessageStatus, raw, "status")


def parse_role(raw: Any) -> MessageRole:
    return _parse_enum(MessageRole, raw, "role")


def format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def message_to_dict(message: Message) -> Dict[str, Any]:
    return {
        "id": message.id,
        "role": message.role.value,
        "content": message.content,
        "status": message.status.value,
        "createdAt": format_timestamp(message.created_at),
    }


def session_to_dict(session: Session, messages: Optional[Iterable[Message]] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "sessionId": session.session_id,
        "status": session.status.value,
        "createdAt": format_timestamp(session.created_at),
    }
    if messages is not None:
        payload["messages"] = [message_to_dict(m) for m in messages]
    return payload


def parse_user_message(body: Mapping[str, Any]) -> Tuple[Optional[str], str]:
    """解析客户端提交的用户消息，返回 (message_id, content)。

    role 必须是 USER（大小写不敏感）；status 可省略，给出时必须是合法值。
    内容是否为空由协调器判断。
    """
    if not isinstance(body, Mapping):
        raise InvalidRequest(message="message body must be an object")
    role = body.get("role", MessageRole.USER.value)
    if parse_role(role) is not MessageRole.USER:
        raise InvalidRequest(message="only USER messages can be submitted", field="role")
    if body.get("status") is not None:
        parse_message_status(body["status"])
    message_id = body.get("id")
    if message_id is not None and (not isinstance(message_id, str) or not message_id.strip()):
        raise InvalidRequest(message="id must be a non-empty string", field="id")
    content = body.get("content")
    if content is not None and not isinstance(content, str):
        raise InvalidRequest(message="content must be a string", field="content")
    return (message_id.strip() if message_id else None), (content or "")
