"""Test class TaskQueue."""
import threading
import time
from typing import List

import pytest

from arithmetic_task_server.common.errors import QueueFullError
from arithmetic_task_server.common.models import Task
from arithmetic_task_server.server.task_queue import TaskQueue


def make_task(i: int) -> Task:
    return Task(id=f"task-{i}", expression_id="expr", arg1=i, arg2=1, operation="+")


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        TaskQueue(capacity=0)


def test_fifo_order() -> None:
    """Tasks come out in the order they went in."""
    queue = TaskQueue(capacity=3)
    for i in range(3):
        queue.put(make_task(i))
    assert [queue.get_nowait().id for _ in range(3)] == ["task-0", "task-1", "task-2"]


def test_put_on_full_queue_raises() -> None:
    """Enqueue on a full queue is rejected instead of blocking."""
    queue = TaskQueue(capacity=1)
    queue.put(make_task(0))
    with pytest.raises(QueueFullError):
        queue.put(make_task(1))
    assert len(queue) == 1


def test_put_many_is_all_or_nothing() -> None:
    """A batch that does not fit leaves the queue unchanged."""
    queue = TaskQueue(capacity=3)
    queue.put(make_task(0))
    with pytest.raises(QueueFullError):
        queue.put_many([make_task(1), make_task(2), make_task(3)])
    assert len(queue) == 1
    assert queue.free_slots() == 2


def test_get_nowait_on_empty_queue_is_idempotent() -> None:
    """Polling an empty queue returns None every time, without side effects."""
    queue = TaskQueue()
    assert queue.get_nowait() is None
    assert queue.get_nowait() is None
    assert len(queue) == 0


def test_task_is_delivered_once() -> None:
    """A dequeued task is never returned by a later poll."""
    queue = TaskQueue()
    queue.put(make_task(0))
    assert queue.get_nowait().id == "task-0"
    assert queue.get_nowait() is None


def test_concurrent_consumers_get_each_task_exactly_once() -> None:
    """Competing consumers partition the tasks with no duplicates and no losses."""
    count = 500
    queue = TaskQueue(capacity=count)
    queue.put_many(make_task(i) for i in range(count))
    received: List[str] = []
    lock = threading.Lock()

    def consume() -> None:
        while True:
            task = queue.get_nowait()
            if task is None:
                return
            with lock:
                received.append(task.id)

    threads = [threading.Thread(target=consume) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(received) == count
    assert set(received) == {f"task-{i}" for i in range(count)}


def test_get_wakes_on_put() -> None:
    """A waiting consumer receives a task enqueued after it started waiting."""
    queue = TaskQueue()
    result: List[Task] = []

    consumer = threading.Thread(target=lambda: result.append(queue.get(timeout=5)))
    consumer.start()
    time.sleep(0.05)
    queue.put(make_task(7))
    consumer.join(timeout=5)

    assert not consumer.is_alive()
    assert result[0].id == "task-7"


def test_get_is_cancellable() -> None:
    """Setting the cancel event and waking the queue ends a wait with None."""
    queue = TaskQueue()
    cancel = threading.Event()
    result: List[object] = []

    consumer = threading.Thread(target=lambda: result.append(queue.get(cancel=cancel)))
    consumer.start()
    time.sleep(0.05)
    cancel.set()
    queue.wake_all()
    consumer.join(timeout=5)

    assert not consumer.is_alive()
    assert result == [None]


def test_get_times_out() -> None:
    assert TaskQueue().get(timeout=0.01) is None


def test_discard_removes_one_expression() -> None:
    """discard drops the tasks of one expression and keeps the order of the rest."""
    queue = TaskQueue(capacity=4)
    queue.put(make_task(0))
    queue.put(Task(id="other", expression_id="other-expr", arg1=1, arg2=1, operation="*"))
    queue.put(make_task(1))

    assert queue.discard("expr") == 2
    assert queue.get_nowait().id == "other"
    assert queue.get_nowait() is None
