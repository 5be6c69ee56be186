"""连接身份分配器"""

import itertools
import threading

from ..protocol import Identity, SYSTEM_IDENTITY


class IdentityAllocator:
    """身份分配器

    为每个新连接分配全局唯一、严格递增的身份，从 0 开始，永不复用。
    可以在多个线程中同时调用。
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("start must be non-negative")
        self._counter = itertools.count(start)
        self._lock = threading.Lock()
        self._issued = 0

    def next(self) -> Identity:
        """分配下一个身份

        Returns:
            新的身份
        """
        with self._lock:
            identity = next(self._counter)
            # 计数器溢出不在考虑范围内，但系统身份绝不能分配出去
            if identity >= SYSTEM_IDENTITY:
                raise OverflowError("identity space exhausted")
            self._issued += 1
            return identity

    @property
    def issued(self) -> int:
        """已分配的身份数量"""
        return self._issued
