"""Echo Chamber 类型定义

本模块定义了 Echo Chamber 的基础类型：连接身份、系统身份哨兵值，
以及消息种类枚举。
"""

from enum import Enum

# WebSocket 关闭码直接使用 websockets 提供的枚举
from websockets.frames import CloseCode

# 连接身份：从 0 开始单调递增的非负整数
Identity = int

# 系统身份：无符号 64 位整数的最大值，永远不会分配给真实连接。
# 带有该身份的信封是 Hub 内部的系统消息（例如断开通知），原样转发。
SYSTEM_IDENTITY: Identity = 2**64 - 1


class MessageKind(Enum):
    """消息种类枚举

    对应 WebSocket 的三种帧：文本、二进制和关闭。
    """

    TEXT = "text"
    BINARY = "binary"
    CLOSE = "close"

