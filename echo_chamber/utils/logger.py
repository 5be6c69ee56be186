"""Echo Chamber 日志系统

本模块提供统一的日志接口，支持标准日志和富文本日志。
只有根日志器（"echo_chamber"）需要配置 handler，各模块的子日志器通过继承获得配置。
"""

import logging
import sys
from typing import Optional

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "echo_chamber"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(
    name: str = ROOT_LOGGER_NAME,
    level: Optional[str] = "info",
    log_file: Optional[str] = None,
    enable_rich: Optional[bool] = True,
) -> logging.Logger:
    """设置日志器

    创建并配置一个日志器实例。支持控制台输出和文件输出。

    Args:
        name: 日志器名称
        level: 日志级别
        log_file: 日志文件路径，为 None 时不写文件
        enable_rich: 是否启用 rich 日志

    Returns:
        配置好的日志器
    """
    level = (level or "INFO").upper()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 清除现有处理器
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if enable_rich:
        rich_handler = RichHandler(
            rich_tracebacks=True, show_time=True, show_level=True, show_path=True
        )
        rich_handler.setLevel(level)
        logger.addHandler(rich_handler)
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        logger.addHandler(console_handler)

    # 文件处理器（如果指定了日志文件）
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """获取日志器

    获取指定名称的日志器。名称应位于 "echo_chamber" 之下，
    这样子日志器会继承根日志器的配置。

    Args:
        name: 日志器名称

    Returns:
        日志器实例
    """
    return logging.getLogger(name)


def disable_logging(name: str = ROOT_LOGGER_NAME) -> None:
    """关闭指定日志器（默认整个包）的输出"""
    logging.getLogger(name).disabled = True
