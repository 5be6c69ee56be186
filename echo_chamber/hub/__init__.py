"""
Hub 服务器模块

中央广播和会话管理：
- 身份分配
- 广播 Hub
- 连接会话
- 服务器实现
"""

from .identity import IdentityAllocator
from .broadcast import BroadcastHub, Receiver
from .transport import Transport, WebSocketTransport
from .session import ChamberSession, SessionState
from .server import ChamberServer, start_chamber_server

__all__ = [
    "IdentityAllocator",
    "BroadcastHub",
    "Receiver",
    "Transport",
    "WebSocketTransport",
    "ChamberSession",
    "SessionState",
    "ChamberServer",
    "start_chamber_server",
]
