"""
交互式命令行工具
"""

from .chat import ChatCLI, main

__all__ = [
    "ChatCLI",
    "main",
]
