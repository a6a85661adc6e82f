"""Unit tests for the snapshot channel."""

import asyncio
import queue
import threading

import pytest

from hpanel.channel import ChannelClosed, channel


class TestChannel:
    """Test channel send/receive semantics."""

    def test_fifo_order(self):
        """Items arrive in the order they were sent."""
        sender, receiver = channel()
        for i in range(5):
            assert sender.send(i) is True
        assert [receiver.recv(timeout=1) for _ in range(5)] == [0, 1, 2, 3, 4]

    def test_recv_timeout(self):
        _, receiver = channel()
        with pytest.raises(queue.Empty):
            receiver.recv(timeout=0.01)

    def test_try_recv_empty(self):
        _, receiver = channel()
        assert receiver.try_recv() is None

    def test_send_never_blocks_unbounded(self):
        """Producers are not held back by a slow consumer."""
        sender, receiver = channel()
        for i in range(10000):
            sender.send(i)
        assert receiver.pending() == 10000

    def test_closed_sender_ends_iteration(self):
        """Iteration drains queued items then stops."""
        sender, receiver = channel()
        sender.send("a")
        sender.send("b")
        sender.close()
        assert list(receiver) == ["a", "b"]
        with pytest.raises(ChannelClosed):
            receiver.recv(timeout=0.01)
        assert sender.send("c") is False

    def test_closed_receiver_drops_sends(self):
        """Sending to a dropped consumer is ignored, not an error."""
        sender, receiver = channel()
        receiver.close()
        assert sender.send("x") is False
        assert sender.is_closed

    def test_latest_returns_newest(self):
        sender, receiver = channel()
        for i in range(3):
            sender.send(i)
        assert receiver.latest() == 2
        assert receiver.latest() is None

    def test_drain(self):
        sender, receiver = channel()
        sender.send(1)
        sender.send(2)
        sender.close()
        assert receiver.drain() == [1, 2]
        assert receiver.pending() == 0

    def test_many_producers(self):
        """Concurrent producers lose nothing and keep per-producer order."""
        sender, receiver = channel()

        def produce(tag):
            for i in range(200):
                sender.send((tag, i))

        threads = [threading.Thread(target=produce, args=(t,)) for t in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        items = receiver.drain()
        assert len(items) == 800
        for tag in range(4):
            assert [i for t, i in items if t == tag] == list(range(200))

    def test_recv_async(self):
        sender, receiver = channel()

        async def consume():
            loop = asyncio.get_running_loop()
            loop.call_later(0.05, sender.send, "late")
            return await receiver.recv_async(poll_interval=0.01)

        assert asyncio.run(consume()) == "late"
