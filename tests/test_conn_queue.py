import threading

import pytest

from tinyhttpd.conn_queue import ConnectionQueue


def test_fifo_order():
    queue = ConnectionQueue()
    for fd in (4, 9, 5):
        queue.enqueue(fd)
    assert [queue.dequeue(), queue.dequeue(), queue.dequeue()] == [4, 9, 5]


def test_len_tracks_contents():
    queue = ConnectionQueue()
    assert len(queue) == 0
    queue.enqueue(3)
    queue.enqueue(8)
    assert len(queue) == 2
    queue.dequeue()
    assert len(queue) == 1


def test_dequeue_times_out_when_empty():
    queue = ConnectionQueue()
    with pytest.raises(TimeoutError):
        queue.dequeue(timeout=0.01)


def test_blocked_consumer_is_woken():
    queue = ConnectionQueue()
    received = []

    def consume():
        received.append(queue.dequeue(timeout=5))

    worker = threading.Thread(target=consume)
    worker.start()
    queue.enqueue(11)
    worker.join(timeout=5)
    assert received == [11]
    assert len(queue) == 0


def test_many_producers_deliver_every_item():
    queue = ConnectionQueue()
    producers = [
        threading.Thread(target=lambda base=base: [queue.enqueue(base + n) for n in range(50)])
        for base in (0, 1000, 2000)
    ]
    for producer in producers:
        producer.start()
    for producer in producers:
        producer.join()
    drained = [queue.dequeue(timeout=1) for _ in range(150)]
    expected = {base + n for base in (0, 1000, 2000) for n in range(50)}
    assert set(drained) == expected
    assert len(queue) == 0