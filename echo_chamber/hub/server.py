"""Hub WebSocket 服务器（会话监管者）"""

import asyncio
from http import HTTPStatus
from typing import Dict, Optional
from urllib.parse import urlsplit

import websockets
from websockets.http11 import Request, Response

from .broadcast import BroadcastHub
from .identity import IdentityAllocator
from .session import ChamberSession
from .transport import WebSocketTransport
from ..utils import ChamberConfig, get_config, get_logger


class ChamberServer:
    """Echo Chamber WebSocket 服务器

    为每个接受的连接分配身份、创建会话并运行到结束。
    各会话在各自的任务中并发运行，单个会话或握手的失败只记录日志，
    不影响监听器继续接受新连接。
    """

    def __init__(
        self,
        config: Optional[ChamberConfig] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ):
        self.config = config or get_config()
        self.host = host if host is not None else self.config.host
        self._port = port if port is not None else self.config.port
        self.path = self.config.path

        # 核心组件
        self.identities = IdentityAllocator()
        self.hub = BroadcastHub(self.config.hub_capacity)
        self._sessions: Dict[int, ChamberSession] = {}

        # 服务器状态
        self.server: Optional[websockets.Server] = None
        self.running = False

        self.logger = get_logger("echo_chamber.hub.server")
        self._session_logger = get_logger("echo_chamber.hub.session")

    @property
    def port(self) -> int:
        """实际监听的端口（配置为 0 时由系统分配）"""
        if self.server is not None:
            for sock in self.server.sockets:
                return sock.getsockname()[1]
        return self._port

    @property
    def url(self) -> str:
        host = self.host if self.host not in ("", "0.0.0.0", "::") else "127.0.0.1"
        return f"ws://{host}:{self.port}{self.path}"

    async def start(self) -> None:
        """启动服务器"""
        if self.running:
            self.logger.warning("服务器已经在运行")
            return

        if self.hub.closed:
            self.hub = BroadcastHub(self.config.hub_capacity)

        try:
            self.server = await websockets.serve(
                self._handle_client,
                self.host,
                self._port,
                process_request=self._process_request,
                ping_interval=self.config.ws_ping_interval,
                ping_timeout=self.config.ws_ping_timeout,
                close_timeout=self.config.ws_close_timeout,
                # 握手失败由 websockets 记录到这个日志器
                logger=self.logger,
            )
        except OSError as e:
            self.logger.error(f"启动服务器失败: {e}")
            raise

        self.running = True
        self.logger.info(f"Greetings from {self.host}:{self.port}")

    async def stop(self) -> None:
        """停止服务器

        先关闭 Hub，让每个会话走正常的终止流程，再关闭监听器。
        """
        if not self.running:
            return

        self.logger.info("停止服务器")
        self.running = False
        self.hub.close()

        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()
            self.server = None

        self.logger.info("服务器已停止")

    async def serve_forever(self) -> None:
        """启动并一直运行，直到被取消"""
        await self.start()
        try:
            await self.server.serve_forever()
        finally:
            await self.stop()

    def _process_request(
        self, connection: websockets.ServerConnection, request: Request
    ) -> Optional[Response]:
        """只升级配置的路径，其余路径返回 404"""
        path = urlsplit(request.path).path
        if path != self.path:
            self.logger.warning(f"拒绝路径 {path} 的连接请求")
            return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")
        return None

    async def _handle_client(self, websocket: websockets.ServerConnection) -> None:
        """处理客户端连接

        Args:
            websocket: 已完成升级的 WebSocket 连接
        """
        identity = self.identities.next()
        session = ChamberSession(
            identity,
            self.hub,
            WebSocketTransport(websocket),
            max_message_length=self.config.max_message_length,
            oversize_pause=self.config.oversize_pause,
            logger=self._session_logger,
        )
        self._sessions[identity] = session
        self.logger.debug(f"{identity} 来自 {websocket.remote_address}")

        try:
            await session.run()
        except asyncio.CancelledError:
            await session.terminate()
            raise
        except Exception as e:
            self.logger.exception(f"会话 {identity} 异常退出: {e}")
            await session.terminate()
        finally:
            self._sessions.pop(identity, None)

    def get_stats(self) -> dict:
        """获取服务器统计信息

        Returns:
            统计信息字典
        """
        return {
            "server": {
                "running": self.running,
                "host": self.host,
                "port": self.port,
                "path": self.path,
            },
            "connections": {
                "active": len(self._sessions),
                "issued": self.identities.issued,
            },
            "hub": self.hub.get_stats(),
        }


# 便捷的启动函数
async def start_chamber_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    config: Optional[ChamberConfig] = None,
) -> ChamberServer:
    """启动 Echo Chamber 服务器

    Args:
        host: 监听地址，为 None 时使用配置中的值
        port: 监听端口，为 None 时使用配置中的值
        config: 配置，默认使用全局配置

    Returns:
        服务器实例
    """
    server = ChamberServer(config, host=host, port=port)
    await server.start()
    return server
