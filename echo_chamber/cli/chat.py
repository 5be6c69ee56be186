"""
交互式聊天客户端

输入的每一行都会作为文本消息发送，收到的消息实时打印。

命令：
- /binary <文本>  以二进制帧发送（服务器会关闭连接）
- /quit          退出
"""

import argparse
import asyncio
import sys
import threading
from typing import Optional, TextIO

from rich.console import Console
from rich.markup import escape

from ..client import ChamberClient
from ..protocol import ChamberException, TransportClosed
from ..utils import configure_logging

DEFAULT_URL = "ws://localhost:3000/ws"


class ChatCLI:
    """交互式聊天界面"""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        console: Optional[Console] = None,
        stdin: Optional[TextIO] = None,
    ):
        self.client = ChamberClient(url)
        self.console = console or Console()
        self.stdin = stdin or sys.stdin
        self.running = False

        # 输入行队列，None 表示输入结束或连接已关闭
        self._lines: asyncio.Queue = asyncio.Queue()

    def render(self, text: str) -> None:
        """按消息类型着色打印"""
        identity = self.client.identity
        if identity is not None and text.startswith(f"{identity} says "):
            self.console.print(f"[dim]{escape(text)}[/dim]", highlight=False)
        elif text.endswith(" disconnected"):
            self.console.print(f"[yellow]{escape(text)}[/yellow]", highlight=False)
        elif " says " in text:
            self.console.print(text, highlight=False, markup=False)
        else:
            self.console.print(f"[magenta]{escape(text)}[/magenta]", highlight=False)

    async def receive_loop(self) -> None:
        """打印收到的每一条消息"""
        async for text in self.client.messages():
            self.render(text)

        reason = self.client.close_reason
        if reason:
            self.console.print(f"[red]连接被关闭: {reason}[/red]")
        else:
            self.console.print("[red]连接已关闭[/red]")
        self.running = False
        # 唤醒等待输入的循环
        self._lines.put_nowait(None)

    def _read_stdin(self, loop: asyncio.AbstractEventLoop) -> None:
        """在守护线程中读取输入，退出时不会阻塞事件循环的关闭"""
        while True:
            try:
                line = self.stdin.readline()
            except (OSError, ValueError):
                line = ""
            try:
                loop.call_soon_threadsafe(self._lines.put_nowait, line or None)
            except RuntimeError:
                # 事件循环已关闭
                return
            if not line:
                return

    async def input_loop(self) -> None:
        """读取输入并发送"""
        loop = asyncio.get_running_loop()
        threading.Thread(target=self._read_stdin, args=(loop,), daemon=True).start()

        while self.running:
            line = await self._lines.get()
            if line is None:
                break
            line = line.rstrip("\n")
            if not line or not self.running:
                continue

            try:
                if line == "/quit":
                    break
                elif line.startswith("/binary"):
                    await self.client.send_binary(line[len("/binary"):].strip().encode())
                else:
                    await self.client.send_text(line)
            except TransportClosed:
                break

    async def run(self) -> int:
        try:
            identity = await self.client.connect()
        except (OSError, ChamberException) as e:
            self.console.print(f"[red]❌ 连接失败: {e}[/red]")
            return 1

        self.console.print(f"[green]✅ 已连接 {self.client.url}，你是 {identity}[/green]")
        self.console.print("[dim]输入消息回车发送，/binary <文本> 发送二进制，/quit 退出[/dim]")
        self.running = True

        receiver = asyncio.create_task(self.receive_loop())
        try:
            await self.input_loop()
        finally:
            self.running = False
            await self.client.disconnect()
            await receiver
        return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Echo Chamber chat client")
    parser.add_argument("url", nargs="?", default=DEFAULT_URL, help="Server URL")
    parser.add_argument("--log-level", default="warning", help="Log level")
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level)
    try:
        return asyncio.run(ChatCLI(args.url).run())
    except KeyboardInterrupt:
        return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
