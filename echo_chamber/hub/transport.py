"""会话传输层

会话只依赖 Transport 接口，WebSocketTransport 把 websockets 连接适配到该接口。
"""

from abc import ABC, abstractmethod
from typing import Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..protocol import CloseCode, Message, TransportClosed, TransportError


class Transport(ABC):
    """会话传输接口"""

    @abstractmethod
    async def recv(self) -> Optional[Message]:
        """接收客户端的下一帧

        Returns:
            下一条消息；流结束时返回 None

        Raises:
            TransportError: 单帧接收失败，可以继续接收
        """
        pass

    @abstractmethod
    async def send(self, message: Message) -> None:
        """向客户端发送一帧，关闭帧会关闭连接

        Raises:
            TransportClosed: 对端已断开
        """
        pass


class WebSocketTransport(Transport):
    """基于 websockets 服务端连接的传输"""

    def __init__(self, websocket: websockets.ServerConnection):
        self.websocket = websocket

    @property
    def remote_address(self):
        return self.websocket.remote_address

    async def recv(self) -> Optional[Message]:
        try:
            data = await self.websocket.recv()
        except ConnectionClosed:
            return None
        except WebSocketException as e:
            raise TransportError(str(e)) from e

        if isinstance(data, str):
            return Message.text(data)
        return Message.binary(data)

    async def send(self, message: Message) -> None:
        try:
            if message.is_close:
                await self.websocket.close(
                    code=message.code or CloseCode.NORMAL_CLOSURE,
                    reason=message.reason,
                )
            else:
                await self.websocket.send(message.data)
        except ConnectionClosed as e:
            raise TransportClosed(str(e)) from e
