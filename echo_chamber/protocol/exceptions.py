"""Echo Chamber 异常定义

本模块定义了 Echo Chamber 的异常体系，区分 Hub 层面与传输层面的错误。
"""


class ChamberException(Exception):
    """Echo Chamber 基础异常

    所有 Echo Chamber 相关异常的基类。
    """

    pass


class HubClosed(ChamberException):
    """Hub 已关闭

    仅在 Hub 被拆除（服务器停止）时由订阅者抛出，正常使用中不会出现。
    """

    pass


class ReceiverLagged(ChamberException):
    """订阅者落后

    订阅者的环形缓冲区溢出，最旧的信封已被丢弃。订阅本身仍然有效。
    """

    def __init__(self, skipped: int):
        super().__init__(f"receiver lagged by {skipped} envelopes")
        self.skipped = skipped


class TransportError(ChamberException):
    """传输错误

    接收单帧时的传输层错误，当前帧被忽略，会话继续。
    """

    pass


class TransportClosed(TransportError):
    """传输已关闭

    对端已断开，无法继续发送。
    """

    pass


class ConfigException(ChamberException):
    """配置错误"""

    pass
