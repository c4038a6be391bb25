from datetime import timezone

from toxgate.core.offline import MessageFlags, OfflineMessageQueue


def test_drain_in_arrival_order(peer):
    queue = OfflineMessageQueue()
    queue.enqueue(peer, "first")
    queue.enqueue(peer, "second")
    assert peer in queue
    assert len(queue) == 2

    messages = queue.drain(peer)
    assert [m.text for m in messages] == ["first", "second"]
    assert all(m.sender == peer for m in messages)
    assert messages[0].timestamp <= messages[1].timestamp
    assert messages[0].timestamp.tzinfo is timezone.utc

    assert peer not in queue
    assert len(queue) == 0
    assert queue.drain(peer) == []


def test_drain_nothing(peer):
    assert OfflineMessageQueue().drain(peer) == []


def test_flags(peer):
    msg = OfflineMessageQueue().enqueue(peer, "hello")
    assert msg.flags & MessageFlags.RECEIVED
    assert msg.flags & MessageFlags.DELAYED
