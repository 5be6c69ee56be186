"""测试广播 Hub"""

import asyncio

import pytest

from echo_chamber.hub import BroadcastHub
from echo_chamber.protocol import Envelope, HubClosed, Message, ReceiverLagged


def env(sender: int, text: str) -> Envelope:
    return Envelope(sender, Message.text(text))


def test_invalid_capacity():
    with pytest.raises(ValueError):
        BroadcastHub(0)


def test_fan_out_to_every_subscriber():
    """每个订阅者都收到同一个信封对象"""

    async def scenario():
        hub = BroadcastHub()
        receivers = [hub.subscribe() for _ in range(3)]

        envelope = env(0, "hi")
        assert hub.publish(envelope) == 3

        for receiver in receivers:
            assert await receiver.recv() is envelope

    asyncio.run(scenario())


def test_publish_order_per_subscriber():
    async def scenario():
        hub = BroadcastHub()
        receiver = hub.subscribe()
        for i in range(10):
            hub.publish(env(1, str(i)))

        got = [(await receiver.recv()).message.data for _ in range(10)]
        assert got == [str(i) for i in range(10)]

    asyncio.run(scenario())


def test_no_replay_for_late_subscriber():
    async def scenario():
        hub = BroadcastHub()
        hub.publish(env(0, "early"))

        late = hub.subscribe()
        hub.publish(env(0, "late"))

        assert (await late.recv()).message.data == "late"
        assert late.pending == 0

    asyncio.run(scenario())


def test_publish_without_subscribers():
    hub = BroadcastHub()
    assert hub.publish(env(0, "nobody")) == 0
    assert hub.published == 1


def test_recv_waits_for_publish():
    async def scenario():
        hub = BroadcastHub()
        receiver = hub.subscribe()

        task = asyncio.create_task(receiver.recv())
        await asyncio.sleep(0.01)
        assert not task.done()

        hub.publish(env(2, "wake"))
        envelope = await asyncio.wait_for(task, 1)
        assert envelope.message.data == "wake"

    asyncio.run(scenario())


def test_lagged_receiver_keeps_subscription():
    """缓冲区溢出后报告落后数量，然后继续读取最旧的保留信封"""

    async def scenario():
        hub = BroadcastHub(capacity=3)
        slow = hub.subscribe()
        fast = hub.subscribe()

        for i in range(5):
            hub.publish(env(0, str(i)))
            await fast.recv()

        with pytest.raises(ReceiverLagged) as info:
            await slow.recv()
        assert info.value.skipped == 2
        assert hub.dropped == 2

        got = [(await slow.recv()).message.data for _ in range(3)]
        assert got == ["2", "3", "4"]

        # 订阅仍然有效
        hub.publish(env(0, "after"))
        assert (await slow.recv()).message.data == "after"

    asyncio.run(scenario())


def test_close_drains_then_raises():
    async def scenario():
        hub = BroadcastHub()
        receiver = hub.subscribe()
        hub.publish(env(0, "last"))
        hub.close()
        hub.close()

        assert (await receiver.recv()).message.data == "last"
        with pytest.raises(HubClosed):
            await receiver.recv()

        assert hub.publish(env(0, "ignored")) == 0

    asyncio.run(scenario())


def test_close_wakes_waiting_receivers():
    async def scenario():
        hub = BroadcastHub()
        receivers = [hub.subscribe() for _ in range(3)]
        tasks = [asyncio.create_task(r.recv()) for r in receivers]
        await asyncio.sleep(0.01)

        hub.close()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, HubClosed) for r in results)

    asyncio.run(scenario())


def test_subscribe_after_close():
    async def scenario():
        hub = BroadcastHub()
        hub.close()
        receiver = hub.subscribe()
        assert hub.subscriber_count == 0
        with pytest.raises(HubClosed):
            await receiver.recv()

    asyncio.run(scenario())


def test_release_removes_subscriber():
    hub = BroadcastHub()
    receiver = hub.subscribe()
    other = hub.subscribe()
    assert hub.subscriber_count == 2

    receiver.release()
    receiver.release()
    assert hub.subscriber_count == 1
    assert hub.publish(env(0, "x")) == 1
    assert receiver.pending == 0
    assert other.pending == 1


def test_cancelled_recv_loses_nothing():
    """取消挂起的 recv 不会丢失信封"""

    async def scenario():
        hub = BroadcastHub()
        receiver = hub.subscribe()

        task = asyncio.create_task(receiver.recv())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        hub.publish(env(0, "kept"))
        assert (await receiver.recv()).message.data == "kept"

    asyncio.run(scenario())


def test_stats():
    hub = BroadcastHub(capacity=1)
    hub.subscribe()
    hub.publish(env(0, "a"))
    hub.publish(env(0, "b"))

    stats = hub.get_stats()
    assert stats == {
        "subscribers": 1,
        "capacity": 1,
        "published": 2,
        "dropped": 1,
        "closed": False,
    }


def test_receiver_closed_flag():
    hub = BroadcastHub()
    released = hub.subscribe()
    live = hub.subscribe()
    assert not released.closed and not live.closed

    released.release()
    assert released.closed
    assert not live.closed

    hub.close()
    assert live.closed
