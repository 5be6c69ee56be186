#!/usr/bin/env python3
"""
Echo Chamber 服务器入口

python -m echo_chamber [--host HOST] [--port PORT] ...
"""

import argparse
import asyncio
import contextlib
import signal
import sys
from typing import Optional

from .hub import ChamberServer
from .protocol import ConfigException
from .utils import ChamberConfig, configure_logging, get_logger, set_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Echo Chamber relay server")
    parser.add_argument("--host", default=None, help="Host address")
    parser.add_argument("--port", type=int, default=None, help="Port number")
    parser.add_argument("--path", default=None, help="WebSocket path")
    parser.add_argument("--log-level", dest="log_level", default=None, help="Log level")
    parser.add_argument("--log-file", dest="log_file", default=None, help="Log file")
    parser.add_argument(
        "--stats-interval",
        dest="stats_interval",
        type=float,
        default=None,
        help="Seconds between stats log lines (0 disables)",
    )
    return parser


def load_config(argv=None) -> ChamberConfig:
    """环境变量打底，命令行参数覆盖"""
    args = build_parser().parse_args(argv)
    config = ChamberConfig.from_env()
    config.update(**vars(args))
    return config


async def monitor_stats(server: ChamberServer, interval: float) -> None:
    """定期输出服务器统计信息"""
    logger = get_logger("echo_chamber.stats")
    while server.running:
        await asyncio.sleep(interval)
        stats = server.get_stats()
        logger.info(
            f"📊 活跃连接: {stats['connections']['active']} | "
            f"已分配身份: {stats['connections']['issued']} | "
            f"已发布: {stats['hub']['published']} | "
            f"已丢弃: {stats['hub']['dropped']}"
        )


async def stop_monitor(task: asyncio.Task) -> None:
    """取消统计任务并等待其结束"""
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


async def serve(config: ChamberConfig) -> None:
    """运行服务器直到收到 SIGINT/SIGTERM"""
    logger = get_logger("echo_chamber.main")
    server = ChamberServer(config)
    await server.start()

    stop_event = asyncio.Event()

    def signal_handler():
        logger.warning("收到停止信号，正在关闭服务器...")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in [signal.SIGINT, signal.SIGTERM]:
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            logger.warning(f"当前平台不支持信号处理（{sig}），请使用 Ctrl+C 退出。")

    monitor_task: Optional[asyncio.Task] = None
    if config.stats_interval > 0:
        monitor_task = asyncio.create_task(monitor_stats(server, config.stats_interval))

    try:
        await stop_event.wait()
    finally:
        if monitor_task is not None:
            await stop_monitor(monitor_task)
        await server.stop()


def main(argv=None) -> int:
    try:
        config = load_config(argv)
    except ConfigException as e:
        print(f"配置错误: {e}", file=sys.stderr)
        return 2

    configure_logging(
        level=config.log_level,
        log_file=config.log_file,
        enable_rich=config.enable_rich_logging,
    )
    set_config(config)

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        pass
    except OSError as e:
        get_logger("echo_chamber.main").error(f"❌ 服务器异常退出: {e}")
        return 1
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
