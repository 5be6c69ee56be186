"""Hub 广播通道

有界的多消费者发布通道。每个订阅者拥有固定容量的环形缓冲区，
慢速订阅者溢出时丢弃最旧的信封，并在下一次读取时报告落后数量，
不会阻塞发布者，也不会影响其他订阅者。
"""

import asyncio
from collections import deque
from typing import Deque, List, Set

from ..protocol import Envelope, HubClosed, ReceiverLagged
from ..utils import get_logger

DEFAULT_CAPACITY = 100


class Receiver:
    """订阅句柄

    观察自订阅之后发布的所有信封。
    """

    def __init__(self, hub: "BroadcastHub", capacity: int):
        self._hub = hub
        self._capacity = capacity
        self._buffer: Deque[Envelope] = deque()
        self._lagged = 0
        self._closed = False
        self._ready = asyncio.Event()

    def _offer(self, envelope: Envelope) -> int:
        """放入一个信封，返回因溢出而丢弃的数量"""
        dropped = 0
        if len(self._buffer) >= self._capacity:
            self._buffer.popleft()
            self._lagged += 1
            dropped = 1
        self._buffer.append(envelope)
        self._ready.set()
        return dropped

    def _close(self) -> None:
        self._closed = True
        self._ready.set()

    @property
    def pending(self) -> int:
        """缓冲区中尚未读取的信封数量"""
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    async def recv(self) -> Envelope:
        """读取下一个信封

        Returns:
            下一个信封

        Raises:
            ReceiverLagged: 自上次读取以来缓冲区溢出，订阅仍然有效
            HubClosed: Hub 已关闭且缓冲区已读完
        """
        while True:
            if self._lagged:
                skipped, self._lagged = self._lagged, 0
                raise ReceiverLagged(skipped)

            if self._buffer:
                return self._buffer.popleft()

            if self._closed:
                raise HubClosed("hub is closed")

            # 只在唤醒后同步取出，取消等待不会丢失信封
            self._ready.clear()
            await self._ready.wait()

    def release(self) -> None:
        """释放订阅"""
        self._hub.unsubscribe(self)


class BroadcastHub:
    """广播 Hub

    进程级共享状态：订阅者注册表加上每个订阅者的环形缓冲区。
    所有操作都是同步完成的，不会在事件循环中交错出现中间状态。
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._receivers: Set[Receiver] = set()
        self._closed = False

        # 统计
        self.published = 0
        self.dropped = 0

        self.logger = get_logger("echo_chamber.hub.broadcast")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._receivers)

    def subscribe(self) -> Receiver:
        """注册新的订阅者

        Returns:
            订阅句柄；Hub 已关闭时返回的句柄会立即报告关闭
        """
        receiver = Receiver(self, self.capacity)
        if self._closed:
            receiver._close()
            return receiver

        self._receivers.add(receiver)
        self.logger.debug(f"新订阅者，当前 {len(self._receivers)} 个")
        return receiver

    def unsubscribe(self, receiver: Receiver) -> None:
        """移除订阅者（可重复调用）"""
        if receiver in self._receivers:
            self._receivers.discard(receiver)
            self.logger.debug(f"订阅者离开，当前 {len(self._receivers)} 个")
        receiver._close()

    def publish(self, envelope: Envelope) -> int:
        """向所有当前订阅者发布信封，不会等待任何消费者

        Args:
            envelope: 要发布的信封

        Returns:
            收到该信封的订阅者数量
        """
        if self._closed:
            self.logger.debug(f"Hub 已关闭，丢弃来自 {envelope.sender} 的信封")
            return 0

        receivers: List[Receiver] = list(self._receivers)
        for receiver in receivers:
            self.dropped += receiver._offer(envelope)

        self.published += 1
        return len(receivers)

    def close(self) -> None:
        """拆除 Hub（可重复调用）

        每个订阅者读完已缓冲的信封后都会收到 HubClosed。
        """
        if self._closed:
            return
        self._closed = True

        for receiver in list(self._receivers):
            receiver._close()
        self._receivers.clear()
        self.logger.info("Hub 已关闭")

    def get_stats(self) -> dict:
        """获取 Hub 统计信息"""
        return {
            "subscribers": len(self._receivers),
            "capacity": self.capacity,
            "published": self.published,
            "dropped": self.dropped,
            "closed": self._closed,
        }
