import threading
import time
from concurrent.futures import CancelledError

import pytest

from imserverkit.threadpool import QueueFullError, ThreadPool


def test_submit_returns_result():
    with ThreadPool(2) as pool:
        future = pool.submit(lambda a, b: a + b, 1, 2)
        assert future.result(timeout=5) == 3


def test_submit_passes_keyword_arguments():
    with ThreadPool(1) as pool:
        future = pool.submit(lambda text, sep: sep.join(text), ["a", "b"], sep="-")
        assert future.result(timeout=5) == "a-b"


def test_task_exception_reaches_future():
    def boom():
        raise ValueError("bad")

    with ThreadPool(1) as pool:
        future = pool.submit(boom)
        with pytest.raises(ValueError, match="bad"):
            future.result(timeout=5)
        # the worker survives and keeps serving
        assert pool.submit(lambda: 7).result(timeout=5) == 7


def test_start_and_stop_update_state():
    pool = ThreadPool(3)
    assert pool.is_running() is False
    assert pool.size() == 0
    pool.start()
    assert pool.is_running() is True
    assert pool.size() == 3
    pool.start()
    assert pool.size() == 3
    pool.stop()
    assert pool.is_running() is False
    assert pool.size() == 0


def test_submit_when_not_running_is_cancelled():
    pool = ThreadPool(1)
    future = pool.submit(lambda: 1)
    assert future.cancelled() is True
    with pytest.raises(CancelledError):
        future.result(timeout=1)


def _blocked_pool(**kwargs):
    pool = ThreadPool(1, **kwargs)
    pool.start()
    started = threading.Event()
    release = threading.Event()

    def blocker():
        started.set()
        release.wait(5)
        return "done"

    first = pool.submit(blocker)
    assert started.wait(5)
    return pool, release, first


def test_queue_full_raises_and_calls_reject_callback():
    rejected = []
    pool, release, first = _blocked_pool(
        max_queue_size=1, reject_callback=lambda: rejected.append(True)
    )
    try:
        queued = pool.submit(lambda: "queued")
        assert pool.queue_size() == 1
        with pytest.raises(QueueFullError):
            pool.submit(lambda: "rejected")
        assert rejected == [True]
    finally:
        release.set()
    assert first.result(timeout=5) == "done"
    assert queued.result(timeout=5) == "queued"
    pool.stop()


def test_stop_with_drain_runs_queued_tasks():
    pool, release, first = _blocked_pool()
    results = []
    futures = [pool.submit(results.append, i) for i in range(5)]
    assert pool.queue_size() == 5
    release.set()
    pool.stop(drain=True)
    assert results == [0, 1, 2, 3, 4]
    assert all(f.done() and not f.cancelled() for f in futures)
    assert first.result(timeout=1) == "done"


def test_stop_without_drain_cancels_queued_tasks():
    pool, release, first = _blocked_pool()
    results = []
    futures = [pool.submit(results.append, i) for i in range(3)]
    timer = threading.Timer(0.2, release.set)
    timer.start()
    pool.stop(drain=False)
    timer.join()
    assert results == []
    assert all(f.cancelled() for f in futures)
    assert first.result(timeout=1) == "done"
    assert pool.queue_size() == 0


def test_tasks_run_concurrently():
    barrier = threading.Barrier(3, timeout=5)
    with ThreadPool(3) as pool:
        futures = [pool.submit(barrier.wait) for _ in range(3)]
        indices = sorted(f.result(timeout=5) for f in futures)
    assert indices == [0, 1, 2]


def test_stop_twice_is_harmless():
    pool = ThreadPool(1)
    pool.start()
    pool.stop()
    start = time.monotonic()
    pool.stop()
    assert time.monotonic() - start < 1
    assert pool.is_running() is False