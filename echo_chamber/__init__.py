"""
Echo Chamber - 实时消息中继

每个客户端发送的文本消息都会转发给所有已连接的客户端（包括发送者自己）。

主要组件：
- protocol: 身份、消息、信封和异常定义
- hub: 身份分配、广播 Hub、连接会话和服务器
- client: WebSocket 客户端
- cli: 交互式聊天客户端
- utils: 配置和日志
"""

__version__ = "1.0.0"

from .protocol import (
    Identity,
    SYSTEM_IDENTITY,
    Message,
    MessageKind,
    Envelope,
    ChamberException,
    HubClosed,
    ReceiverLagged,
    TransportError,
    TransportClosed,
)
from .hub import (
    IdentityAllocator,
    BroadcastHub,
    ChamberSession,
    ChamberServer,
    start_chamber_server,
)
from .client import ChamberClient
from .utils import ChamberConfig, configure_logging, get_logger

__all__ = [
    "__version__",
    # 协议
    "Identity",
    "SYSTEM_IDENTITY",
    "Message",
    "MessageKind",
    "Envelope",
    "ChamberException",
    "HubClosed",
    "ReceiverLagged",
    "TransportError",
    "TransportClosed",
    # Hub
    "IdentityAllocator",
    "BroadcastHub",
    "ChamberSession",
    "ChamberServer",
    "start_chamber_server",
    # 客户端
    "ChamberClient",
    # 工具
    "ChamberConfig",
    "configure_logging",
    "get_logger",
]
