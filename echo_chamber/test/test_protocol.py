#!/usr/bin/env python3
"""测试 Protocol 模块和身份分配器的基本功能"""

import threading

import pytest
from websockets.frames import CloseCode as WebSocketCloseCode

from echo_chamber.protocol import (
    CloseCode,
    SYSTEM_IDENTITY,
    ChamberException,
    Envelope,
    Message,
    MessageKind,
    ReceiverLagged,
    TransportClosed,
    TransportError,
    disconnected_text,
    greeting_text,
    parse_greeting,
    relay_text,
)
from echo_chamber.hub import IdentityAllocator


def test_message_kinds():
    """测试消息构造"""
    text = Message.text("hi")
    assert text.kind is MessageKind.TEXT
    assert text.is_text and not text.is_binary and not text.is_close
    assert len(text) == 2

    binary = Message.binary(bytearray(b"\x00\x01\x02"))
    assert binary.is_binary
    assert binary.data == b"\x00\x01\x02"
    assert len(binary) == 3

    close = Message.close(1003, "bye")
    assert close.is_close
    assert (close.code, close.reason) == (1003, "bye")
    assert len(close) == 0


def test_length_counts_characters():
    """文本长度按字符计数，而不是 UTF-8 字节"""
    assert len(Message.text("é" * 500)) == 500


def test_envelope_is_immutable():
    envelope = Envelope(3, Message.text("x"))
    with pytest.raises(AttributeError):
        envelope.sender = 4


def test_system_envelope():
    """测试系统信封"""
    envelope = Envelope.system("7 disconnected")
    assert envelope.sender == SYSTEM_IDENTITY == 2**64 - 1
    assert envelope.is_system
    assert envelope.message == Message.text("7 disconnected")

    assert not Envelope(0, Message.text("x")).is_system


def test_frame_wording():
    assert greeting_text(4) == "You are 4"
    assert relay_text(0, "hello") == "0 says hello"
    assert relay_text(2, "") == "2 says "
    assert disconnected_text(1) == "1 disconnected"


def test_parse_greeting():
    assert parse_greeting("You are 12") == 12

    for bad in ("0 says hi", "You are", "You are x"):
        with pytest.raises(ChamberException):
            parse_greeting(bad)


def test_close_codes_come_from_websockets():
    assert CloseCode is WebSocketCloseCode
    assert CloseCode.UNSUPPORTED_DATA == 1003
    assert Message.close(CloseCode.UNSUPPORTED_DATA, "x").code == 1003


def test_exceptions():
    """测试异常体系"""
    lagged = ReceiverLagged(5)
    assert lagged.skipped == 5
    assert "5" in str(lagged)

    assert issubclass(TransportClosed, TransportError)
    assert issubclass(TransportError, ChamberException)


def test_identity_allocator_sequence():
    """测试身份从 0 开始严格递增"""
    allocator = IdentityAllocator()
    assert [allocator.next() for _ in range(5)] == [0, 1, 2, 3, 4]
    assert allocator.issued == 5


def test_identity_allocator_threads():
    """多个线程同时分配，身份互不重复"""
    allocator = IdentityAllocator()
    results = []
    lock = threading.Lock()

    def worker():
        local = [allocator.next() for _ in range(1000)]
        with lock:
            results.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 8000
    assert set(results) == set(range(8000))
    assert allocator.issued == 8000


def test_identity_allocator_never_issues_system_identity():
    allocator = IdentityAllocator(start=SYSTEM_IDENTITY - 1)
    assert allocator.next() == SYSTEM_IDENTITY - 1
    with pytest.raises(OverflowError):
        allocator.next()


def main():
    """运行所有测试"""
    print("🚀 开始测试 Echo Chamber - Protocol 模块\n")

    try:
        test_message_kinds()
        test_length_counts_characters()
        test_system_envelope()
        test_frame_wording()
        test_parse_greeting()
        test_exceptions()
        test_identity_allocator_sequence()
        test_identity_allocator_threads()

        print("🎉 所有测试通过！")

    except Exception as e:
        print(f"❌ 测试失败: {e}")
        import traceback

        traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
