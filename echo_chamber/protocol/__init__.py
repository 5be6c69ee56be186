"""
Protocol 模块

核心协议定义：
- 身份与消息类型
- 消息与信封
- 异常体系
"""

from .types import Identity, MessageKind, CloseCode, SYSTEM_IDENTITY
from .messages import (
    Message,
    Envelope,
    MESSAGE_TOO_LONG,
    ONLY_TEXT_ALLOWED,
    greeting_text,
    relay_text,
    disconnected_text,
    parse_greeting,
)
from .exceptions import (
    ChamberException,
    HubClosed,
    ReceiverLagged,
    TransportError,
    TransportClosed,
    ConfigException,
)

__all__ = [
    # 类型
    "Identity",
    "MessageKind",
    "CloseCode",
    "SYSTEM_IDENTITY",
    # 消息
    "Message",
    "Envelope",
    "MESSAGE_TOO_LONG",
    "ONLY_TEXT_ALLOWED",
    "greeting_text",
    "relay_text",
    "disconnected_text",
    "parse_greeting",
    # 异常
    "ChamberException",
    "HubClosed",
    "ReceiverLagged",
    "TransportError",
    "TransportClosed",
    "ConfigException",
]
