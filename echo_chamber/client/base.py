"""Echo Chamber 客户端"""

import asyncio
from typing import AsyncIterator, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed
from websockets.frames import Close

from ..protocol import Identity, TransportClosed, parse_greeting
from ..utils import get_logger


class ChamberClient:
    """Echo Chamber WebSocket 客户端

    连接后读取问候消息得到自己的身份，之后收到的每一帧都是服务器转发的文本。

    Usage:
        async with ChamberClient("ws://localhost:3000/ws") as client:
            await client.send_text("hello")
            print(await client.recv())  # "0 says hello"
    """

    def __init__(self, url: str, open_timeout: float = 10.0):
        self.url = url
        self.open_timeout = open_timeout
        self.websocket: Optional[websockets.ClientConnection] = None
        self.identity: Optional[Identity] = None

        # 服务器发来的关闭帧
        self._close_frame: Optional[Close] = None

        self.logger = get_logger("echo_chamber.client")

    @property
    def connected(self) -> bool:
        return self.websocket is not None and self.websocket.close_code is None

    @property
    def close_code(self) -> Optional[int]:
        """服务器关闭连接时给出的关闭码"""
        if self._close_frame is not None:
            return self._close_frame.code
        return self.websocket.close_code if self.websocket else None

    @property
    def close_reason(self) -> Optional[str]:
        """服务器关闭连接时给出的原因"""
        if self._close_frame is not None:
            return self._close_frame.reason
        return self.websocket.close_reason if self.websocket else None

    async def connect(self) -> Identity:
        """连接到服务器并读取问候

        Returns:
            服务器分配的身份
        """
        self.logger.info(f"连接到服务器: {self.url}")
        self.websocket = await websockets.connect(
            self.url, open_timeout=self.open_timeout
        )

        greeting = await self.recv(timeout=self.open_timeout)
        self.identity = parse_greeting(greeting)
        self.logger.info(f"连接成功，身份为 {self.identity}")
        return self.identity

    async def disconnect(self) -> None:
        """断开连接"""
        if self.websocket is None:
            return
        try:
            await self.websocket.close()
        finally:
            self.logger.info("连接已断开")

    async def send_text(self, text: str) -> None:
        """发送文本消息"""
        await self._send(text)

    async def send_binary(self, data: bytes) -> None:
        """发送二进制消息（服务器会以 1003 关闭连接）"""
        await self._send(bytes(data))

    async def _send(self, data: Union[str, bytes]) -> None:
        if self.websocket is None:
            raise RuntimeError("客户端未连接")
        try:
            await self.websocket.send(data)
        except ConnectionClosed as e:
            raise TransportClosed(str(e)) from e

    async def recv(self, timeout: Optional[float] = None) -> str:
        """接收下一帧文本

        Args:
            timeout: 超时时间（秒），None 表示一直等待

        Raises:
            TransportClosed: 连接已关闭
            asyncio.TimeoutError: 超时
        """
        if self.websocket is None:
            raise RuntimeError("客户端未连接")
        try:
            data = await asyncio.wait_for(self.websocket.recv(), timeout)
        except ConnectionClosed as e:
            if e.rcvd is not None:
                self._close_frame = e.rcvd
            raise TransportClosed(str(e)) from e

        if isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        return data

    async def messages(self) -> AsyncIterator[str]:
        """逐条产出收到的文本，连接关闭时结束"""
        while True:
            try:
                yield await self.recv()
            except TransportClosed:
                return

    async def __aenter__(self) -> "ChamberClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()
