import queue
import threading
import time

import pytest

from imserverkit.blocking_queue import BlockingQueue


def test_fifo_order():
    q = BlockingQueue()
    for item in ("a", "b", "c"):
        q.put(item)
    assert [q.take(100) for _ in range(3)] == ["a", "b", "c"]


def test_len_and_empty():
    q = BlockingQueue()
    assert q.empty()
    assert len(q) == 0
    q.put(1)
    q.put(2)
    assert not q.empty()
    assert len(q) == 2


def test_clear():
    q = BlockingQueue()
    q.put(1)
    q.put(2)
    q.clear()
    assert q.empty()
    with pytest.raises(queue.Empty):
        q.take(10)


def test_take_times_out():
    q = BlockingQueue()
    start = time.perf_counter()
    with pytest.raises(queue.Empty):
        q.take(30)
    assert time.perf_counter() - start >= 0.02


def test_take_zero_timeout_returns_available_item():
    q = BlockingQueue()
    q.put("x")
    assert q.take(0) == "x"


def test_blocking_take_wakes_on_put():
    q = BlockingQueue()
    producer = threading.Timer(0.05, q.put, args=("payload",))
    producer.start()
    start = time.perf_counter()
    value = q.take()
    waited = time.perf_counter() - start
    producer.join(timeout=2)
    assert value == "payload"
    assert waited >= 0.03
    assert q.empty()


def test_many_producers_deliver_every_item():
    q = BlockingQueue()
    producers = [
        threading.Thread(target=lambda base=base: [q.put(base + i) for i in range(50)])
        for base in (0, 1000, 2000)
    ]
    for producer in producers:
        producer.start()
    for producer in producers:
        producer.join()
    taken = sorted(q.take(100) for _ in range(150))
    expected = sorted(base + i for base in (0, 1000, 2000) for i in range(50))
    assert taken == expected
    assert q.empty()