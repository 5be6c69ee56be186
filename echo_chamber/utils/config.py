"""Echo Chamber 配置管理

本模块提供统一的配置管理接口，支持环境变量、默认值和运行时配置。
配置优先级：命令行参数 > 环境变量 > 默认值
"""

import os
from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass, field, fields

from ..protocol import ConfigException


@dataclass
class ChamberConfig:
    """Echo Chamber 配置类

    包含服务器、Hub、会话策略和日志的全部配置项。
    """

    # 服务器配置
    host: str = "0.0.0.0"
    port: int = 3000
    path: str = "/ws"

    # WebSocket 配置
    ws_ping_interval: Optional[float] = 30.0
    ws_ping_timeout: Optional[float] = 10.0
    ws_close_timeout: float = 10.0

    # Hub 配置
    hub_capacity: int = 100

    # 会话策略
    max_message_length: int = 500
    oversize_pause: float = 0.5

    # 日志配置
    log_level: str = "INFO"
    log_file: Optional[str] = None
    enable_rich_logging: bool = True

    # 统计输出间隔（秒），0 表示关闭
    stats_interval: float = 0.0

    # 自定义配置
    custom: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "ChamberConfig":
        """从环境变量创建配置

        读取环境变量并创建配置实例。环境变量格式：CHAMBER_<配置名>

        Returns:
            从环境变量读取的配置实例

        Raises:
            ConfigException: 环境变量的值无法解析时
        """
        config = cls()

        for f in fields(cls):
            if f.name == "custom":
                continue
            raw = os.getenv(f"CHAMBER_{f.name.upper()}")
            if raw is None:
                continue
            setattr(config, f.name, _parse_value(f.name, raw, getattr(config, f.name)))

        return config

    def update(self, **kwargs) -> None:
        """更新配置项

        值为 None 的参数会被忽略，便于直接传入未指定的命令行参数。

        Args:
            **kwargs: 要更新的配置项
        """
        for key, value in kwargs.items():
            if value is None:
                continue
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                self.custom[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """获取配置项

        Args:
            key: 配置项名称
            default: 默认值

        Returns:
            配置项的值
        """
        if hasattr(self, key):
            return getattr(self, key)
        return self.custom.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典

        Returns:
            配置的字典表示
        """
        result = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "custom"}

        # 添加自定义配置
        result.update(self.custom)
        return result


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_optional_float(raw: str) -> Optional[float]:
    # ping 相关配置可以用 none 关闭
    if raw.strip().lower() in ("", "none", "off"):
        return None
    return float(raw)


_PARSERS: Dict[str, Callable[[str], Any]] = {
    "port": int,
    "hub_capacity": int,
    "max_message_length": int,
    "ws_ping_interval": _parse_optional_float,
    "ws_ping_timeout": _parse_optional_float,
    "ws_close_timeout": float,
    "oversize_pause": float,
    "stats_interval": float,
    "enable_rich_logging": _parse_bool,
}


def _parse_value(name: str, raw: str, current: Any) -> Any:
    parser = _PARSERS.get(name)
    if parser is None:
        if name == "log_file":
            return raw or current
        return raw
    try:
        return parser(raw)
    except ValueError as e:
        raise ConfigException(f"Invalid value for CHAMBER_{name.upper()}: {raw!r}") from e


# 全局配置实例
_global_config: Optional[ChamberConfig] = None


def get_config() -> ChamberConfig:
    """获取全局配置

    如果配置尚未初始化，则从环境变量创建默认配置。

    Returns:
        全局配置实例
    """
    global _global_config
    if _global_config is None:
        _global_config = ChamberConfig.from_env()
    return _global_config


def set_config(config: ChamberConfig) -> None:
    """设置全局配置

    Args:
        config: 新的配置实例
    """
    global _global_config
    _global_config = config


def update_config(**kwargs) -> None:
    """更新全局配置

    Args:
        **kwargs: 要更新的配置项
    """
    config = get_config()
    config.update(**kwargs)


def reset_config() -> None:
    """重置全局配置

    清除当前配置，下次调用 get_config() 时会重新从环境变量读取。
    """
    global _global_config
    _global_config = None
