"""Echo Chamber 消息格式定义

本模块定义了在 Hub 中流转的消息与信封，以及发往客户端的固定文本格式。
消息和信封在发布后不可变，Hub 将同一个对象共享给所有订阅者。
"""

from dataclasses import dataclass
from typing import Optional, Union

from .types import Identity, MessageKind, SYSTEM_IDENTITY
from .exceptions import ChamberException


@dataclass(frozen=True)
class Message:
    """消息

    带标签的值：文本（str）、二进制（bytes）或关闭帧（可选的关闭码和原因）。
    """

    kind: MessageKind
    data: Union[str, bytes, None] = None
    code: Optional[int] = None
    reason: str = ""

    @classmethod
    def text(cls, text: str) -> "Message":
        return cls(kind=MessageKind.TEXT, data=text)

    @classmethod
    def binary(cls, data: bytes) -> "Message":
        return cls(kind=MessageKind.BINARY, data=bytes(data))

    @classmethod
    def close(cls, code: Optional[int] = None, reason: str = "") -> "Message":
        return cls(kind=MessageKind.CLOSE, code=code, reason=reason)

    @property
    def is_text(self) -> bool:
        return self.kind is MessageKind.TEXT

    @property
    def is_binary(self) -> bool:
        return self.kind is MessageKind.BINARY

    @property
    def is_close(self) -> bool:
        return self.kind is MessageKind.CLOSE

    def __len__(self) -> int:
        """文本按字符计数，二进制按字节计数，关闭帧长度为 0"""
        if self.data is None:
            return 0
        return len(self.data)


@dataclass(frozen=True)
class Envelope:
    """广播信封

    由发送者身份和消息组成，是 Hub 广播流中的单位。
    """

    sender: Identity
    message: Message

    @property
    def is_system(self) -> bool:
        """是否为 Hub 内部的系统消息（带系统身份）"""
        return self.sender == SYSTEM_IDENTITY

    @classmethod
    def system(cls, text: str) -> "Envelope":
        """创建一条系统文本信封"""
        return cls(sender=SYSTEM_IDENTITY, message=Message.text(text))


# === 发往客户端的固定文本 ===

MESSAGE_TOO_LONG = "message too long, not sent"
ONLY_TEXT_ALLOWED = "only text messages are allowed"


def greeting_text(identity: Identity) -> str:
    """分配身份后的私有问候"""
    return f"You are {identity}"


def relay_text(sender: Identity, text: str) -> str:
    """转发某个身份的文本消息"""
    return f"{sender} says {text}"


def disconnected_text(identity: Identity) -> str:
    """某个身份离开的通知"""
    return f"{identity} disconnected"


def parse_greeting(text: str) -> Identity:
    """从问候文本中解析身份

    Raises:
        ChamberException: 文本不是问候格式时
    """
    prefix = "You are "
    if not text.startswith(prefix):
        raise ChamberException(f"Not a greeting: {text!r}")
    try:
        return int(text[len(prefix):])
    except ValueError as e:
        raise ChamberException(f"Invalid identity in greeting: {text!r}") from e
