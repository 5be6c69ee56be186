"""
Client SDK 模块

Echo Chamber 的 WebSocket 客户端
"""

from .base import ChamberClient

__all__ = [
    "ChamberClient",
]
