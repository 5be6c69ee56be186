"""连接会话

每个连接一个会话，显式的三状态状态机：

    GREETING -> ACTIVE -> TERMINATING -> CLOSED

- GREETING：订阅 Hub，并私下告诉客户端它的身份
- ACTIVE：同时等待 Hub 广播和客户端输入，谁先到就处理谁
- TERMINATING：发布断开通知，释放订阅
"""

import asyncio
import logging
import random
from enum import Enum
from typing import Optional

from ..protocol import (
    CloseCode,
    Envelope,
    HubClosed,
    Identity,
    Message,
    MESSAGE_TOO_LONG,
    ONLY_TEXT_ALLOWED,
    ReceiverLagged,
    TransportClosed,
    TransportError,
    disconnected_text,
    greeting_text,
    relay_text,
)
from ..utils import get_logger
from .broadcast import BroadcastHub, Receiver
from .transport import Transport

DEFAULT_MAX_MESSAGE_LENGTH = 500
DEFAULT_OVERSIZE_PAUSE = 0.5


class SessionState(Enum):
    """会话状态"""

    GREETING = "greeting"
    ACTIVE = "active"
    TERMINATING = "terminating"
    CLOSED = "closed"


class ChamberSession:
    """连接会话"""

    def __init__(
        self,
        identity: Identity,
        hub: BroadcastHub,
        transport: Transport,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
        oversize_pause: float = DEFAULT_OVERSIZE_PAUSE,
        logger: Optional[logging.Logger] = None,
    ):
        self.identity = identity
        self.hub = hub
        self.transport = transport
        self.max_message_length = max_message_length
        self.oversize_pause = oversize_pause

        self.state = SessionState.GREETING
        self.receiver: Optional[Receiver] = None

        self.logger = logger or get_logger("echo_chamber.hub.session")

    async def run(self) -> None:
        """运行会话直到结束"""
        self.logger.info(f"{self.identity} admitted")

        await self.greet()
        if self.state is SessionState.ACTIVE:
            await self.run_active()
        await self.terminate()

    # ===========================================
    # GREETING
    # ===========================================

    async def greet(self) -> None:
        """入口动作：订阅 Hub 后立即发送私有问候"""
        self.receiver = self.hub.subscribe()

        if await self._send(Message.text(greeting_text(self.identity))):
            self.state = SessionState.ACTIVE

    # ===========================================
    # ACTIVE
    # ===========================================

    async def run_active(self) -> None:
        """在 Hub 与客户端两个事件源之间公平竞争

        两个等待在每一轮都保持挂起；同时就绪时随机选一个处理，
        另一个的结果留到下一轮。
        """
        hub_task: Optional[asyncio.Future] = None
        client_task: Optional[asyncio.Future] = None

        try:
            while self.state is SessionState.ACTIVE:
                if hub_task is None:
                    hub_task = asyncio.ensure_future(self.receiver.recv())
                if client_task is None:
                    client_task = asyncio.ensure_future(self.transport.recv())

                done, _ = await asyncio.wait(
                    {hub_task, client_task}, return_when=asyncio.FIRST_COMPLETED
                )
                winner = random.choice(list(done))

                if winner is hub_task:
                    hub_task = None
                    await self._on_hub_event(winner)
                else:
                    client_task = None
                    await self._on_client_event(winner)
        finally:
            await self._discard(hub_task, client_task)

    async def _on_hub_event(self, task: asyncio.Future) -> None:
        try:
            envelope: Envelope = task.result()
        except HubClosed:
            self.logger.debug(f"{self.identity} 的 Hub 订阅已关闭")
            self.state = SessionState.TERMINATING
            return
        except ReceiverLagged as e:
            self.logger.warning(f"{self.identity} lagged {e.skipped} messages")
            return

        message = envelope.message
        if envelope.is_system:
            # 已格式化好的系统消息，原样转发
            await self._send(message)
        elif message.is_text:
            await self._send(Message.text(relay_text(envelope.sender, message.data)))
        # 二进制从不转发

    async def _on_client_event(self, task: asyncio.Future) -> None:
        try:
            message: Optional[Message] = task.result()
        except TransportClosed:
            message = None
        except TransportError as e:
            self.logger.error(f"{self.identity} msg error {e!r}")
            return

        if message is None:
            self.state = SessionState.TERMINATING
        elif message.is_text:
            if len(message) > self.max_message_length:
                self.logger.info(
                    f"{self.identity} 的消息过长 ({len(message)} > {self.max_message_length})"
                )
                if await self._send(Message.text(MESSAGE_TOO_LONG)):
                    await asyncio.sleep(self.oversize_pause)
            else:
                self.hub.publish(Envelope(self.identity, message))
        elif message.is_close:
            # 不响应关闭帧，避免向正在关闭的连接发送
            pass
        else:
            self.logger.warning(f"{self.identity} sent binary")
            await self._send(Message.close(CloseCode.UNSUPPORTED_DATA, ONLY_TEXT_ALLOWED))
            self.state = SessionState.TERMINATING

    # ===========================================
    # TERMINATING
    # ===========================================

    async def terminate(self) -> None:
        """出口动作：发布断开通知并释放订阅（可重复调用）"""
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.TERMINATING

        self.hub.publish(Envelope.system(disconnected_text(self.identity)))
        if self.receiver is not None:
            self.receiver.release()

        self.state = SessionState.CLOSED
        self.logger.info(f"{self.identity} disconnected")

    # ===========================================
    # 辅助方法
    # ===========================================

    async def _send(self, message: Message) -> bool:
        """发送一帧；对端已断开时转入 TERMINATING 并返回 False"""
        try:
            await self.transport.send(message)
            return True
        except TransportClosed as e:
            self.logger.debug(f"{self.identity} 发送失败，连接已关闭: {e}")
            self.state = SessionState.TERMINATING
            return False

    async def _discard(self, *tasks: Optional[asyncio.Future]) -> None:
        pending = []
        for task in tasks:
            if task is None:
                continue
            if task.done():
                # 已完成但未处理的结果直接丢弃
                if not task.cancelled():
                    task.exception()
            else:
                task.cancel()
                pending.append(task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
