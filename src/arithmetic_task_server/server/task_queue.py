"""Bounded FIFO of tasks shared by producers, HTTP pollers and the agent loop."""
from collections import deque
import threading
from typing import Deque, Iterable, List, Optional

from arithmetic_task_server.common.errors import QueueFullError
from arithmetic_task_server.common.models import Task


class TaskQueue:
    """
    Bounded, thread-safe FIFO of tasks.

    Rules:
        - Producers never block: an enqueue that does not fit raises QueueFullError.
        - Every dequeue removes the task under the lock, so a task is delivered
          to exactly one consumer.
        - ``get`` suspends the caller until a task arrives or the wait is cancelled;
          ``get_nowait`` never suspends.
    """

    def __init__(self, capacity: int = 10) -> None:
        if capacity < 1:
            raise ValueError(f"Queue capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._items: Deque[Task] = deque()
        self._cond = threading.Condition()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def free_slots(self) -> int:
        with self._cond:
            return self._capacity - len(self._items)

    def put(self, task: Task) -> None:
        """
        Enqueue one task without blocking.

        :param Task task: Task to enqueue

        :raises QueueFullError: If the queue is at capacity
        """
        self.put_many([task])

    def put_many(self, tasks: Iterable[Task]) -> None:
        """
        Enqueue several tasks at once, all or nothing.

        :param tasks: Tasks to enqueue, in order

        :raises QueueFullError: If the queue cannot take every task; nothing is enqueued then
        """
        batch: List[Task] = list(tasks)
        if not batch:
            return
        with self._cond:
            if len(self._items) + len(batch) > self._capacity:
                raise QueueFullError(self._capacity)
            self._items.extend(batch)
            self._cond.notify(len(batch))

    def discard(self, expression_id: str) -> int:
        """
        Remove every queued task of one expression.

        :return: Number of tasks removed
        :rtype: int
        """
        with self._cond:
            kept = [task for task in self._items if task.expression_id != expression_id]
            removed = len(self._items) - len(kept)
            self._items = deque(kept)
            return removed

    def get_nowait(self) -> Optional[Task]:
        """
        Dequeue the oldest task, or return None when the queue is empty.

        :return: Task or None
        :rtype: Optional[Task]
        """
        with self._cond:
            return self._items.popleft() if self._items else None

    def get(self, cancel: Optional[threading.Event] = None, timeout: Optional[float] = None) -> Optional[Task]:
        """
        Dequeue the oldest task, waiting until one is available.

        The wait ends early when ``cancel`` is set and ``wake_all`` is called,
        or when ``timeout`` expires.

        :param cancel: Event that aborts the wait once set
        :param timeout: Maximum number of seconds to wait, None for no limit

        :return: Task, or None if cancelled or timed out
        :rtype: Optional[Task]
        """
        with self._cond:
            self._cond.wait_for(
                lambda: bool(self._items) or (cancel is not None and cancel.is_set()),
                timeout=timeout,
            )
            if cancel is not None and cancel.is_set():
                return None
            return self._items.popleft() if self._items else None

    def wake_all(self) -> None:
        """Wake every waiting consumer so it can re-check its cancel event."""
        with self._cond:
            self._cond.notify_all()
