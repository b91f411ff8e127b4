"""Split expressions into tasks and fold task results back into expressions."""
from collections import deque
import threading
from typing import Deque, Dict, List, Mapping, Optional, Union
import uuid

from arithmetic_task_server.common.errors import QueueFullError, TaskNotFoundError
from arithmetic_task_server.common.logger import logger
from arithmetic_task_server.common.models import Expression, Task
from arithmetic_task_server.common.parser import RpnItem
from arithmetic_task_server.server.registry import ExpressionRegistry
from arithmetic_task_server.server.task_queue import TaskQueue


class _Step:
    """One operation of an expression, dispatched as a task once both operands are known."""

    __slots__ = ("id", "expression_id", "operation", "args", "parent", "slot")

    def __init__(self, expression_id: str, operation: str) -> None:
        self.id: str = str(uuid.uuid4())
        self.expression_id = expression_id
        self.operation = operation
        self.args: List[Optional[float]] = [None, None]
        self.parent: Optional["_Step"] = None
        self.slot: int = 0

    @property
    def ready(self) -> bool:
        return self.args[0] is not None and self.args[1] is not None


class TaskScheduler:
    """
    Track the operations of every pending expression.

    Flow:
        1. ``submit`` turns an RPN program into steps, enqueues every step whose
           operands are literal numbers and registers the expression as pending.
        2. ``complete`` stores a task result in its parent step; a parent that
           becomes ready is dispatched as a new task.
        3. Completing the last step completes the expression in the registry.

    Follow-up tasks that do not fit in the queue wait in a deferred backlog
    and are moved to the queue by ``flush_deferred`` once slots free up.
    """

    def __init__(
        self,
        registry: ExpressionRegistry,
        queue: TaskQueue,
        operation_times: Optional[Mapping[str, int]] = None,
    ) -> None:
        self._registry = registry
        self._queue = queue
        self._operation_times: Dict[str, int] = dict(operation_times or {})
        self._lock = threading.Lock()
        self._in_flight: Dict[str, _Step] = {}
        self._deferred: Deque[Task] = deque()

    @property
    def in_flight(self) -> int:
        """Number of dispatched tasks still waiting for a result."""
        with self._lock:
            return len(self._in_flight)

    @property
    def deferred(self) -> int:
        with self._lock:
            return len(self._deferred)

    def _to_task(self, step: _Step) -> Task:
        return Task(
            id=step.id,
            expression_id=step.expression_id,
            arg1=step.args[0],
            arg2=step.args[1],
            operation=step.operation,
            operation_time=self._operation_times.get(step.operation, 0),
        )

    def _plan(self, expression_id: str, program: List[RpnItem]) -> Union[float, List[_Step]]:
        """
        Link the operations of an RPN program into steps.

        :return: The value itself for a program without operations, otherwise the ready steps
        """
        stack: List[Union[float, _Step]] = []
        ready: List[_Step] = []
        for item in program:
            if isinstance(item, float):
                stack.append(item)
                continue
            right = stack.pop()
            left = stack.pop()
            step = _Step(expression_id, item)
            for slot, operand in enumerate((left, right)):
                if isinstance(operand, _Step):
                    operand.parent = step
                    operand.slot = slot
                else:
                    step.args[slot] = operand
            if step.ready:
                ready.append(step)
            stack.append(step)

        root = stack[0]
        if isinstance(root, float):
            return root
        return ready

    def submit(self, expression: Expression, program: List[RpnItem]) -> Expression:
        """
        Register a new expression and enqueue its first tasks.

        Ready tasks that do not fit in the queue join the deferred backlog.
        Nothing is registered when the queue is already full.

        :param Expression expression: New pending expression
        :param program: Validated RPN program of the expression

        :return: The stored record
        :rtype: Expression
        :raises QueueFullError: If the queue has no free slot
        :raises DuplicateIDError: If the expression id is already registered
        """
        plan = self._plan(expression.id, program)
        with self._lock:
            if isinstance(plan, float):
                # A bare number needs no worker
                expression = expression.complete(plan)
                self._registry.put(expression)
                return expression

            self._flush_locked()
            free = self._queue.free_slots()
            if free == 0:
                raise QueueFullError(self._queue.capacity)

            self._registry.put(expression)
            tasks = [self._to_task(step) for step in plan]
            self._queue.put_many(tasks[:free])
            self._deferred.extend(tasks[free:])
            for step in plan:
                self._in_flight[step.id] = step

        queued = min(free, len(plan))
        logger.info(
            f"🧮 Expression {expression.id} split, {queued} task(s) queued, {len(plan) - queued} deferred"
        )
        return expression

    def complete(self, task_id: str, result: float) -> Optional[Expression]:
        """
        Record the result of a dispatched task.

        :param str task_id: Identifier of the computed task
        :param float result: Finite result of the task

        :return: The completed expression if this was its last task, else None
        :rtype: Optional[Expression]
        :raises TaskNotFoundError: If the task is unknown or was already completed
        """
        with self._lock:
            step = self._in_flight.pop(task_id, None)
            if step is None:
                raise TaskNotFoundError(task_id)

            parent = step.parent
            if parent is None:
                return self._registry.update(step.expression_id, lambda expr: expr.complete(result))

            parent.args[step.slot] = result
            if parent.ready:
                self._dispatch(parent)
            return None

    def _dispatch(self, step: _Step) -> None:
        """Queue a step whose operands are known. Caller holds the lock."""
        self._in_flight[step.id] = step
        task = self._to_task(step)
        if self._deferred:
            # Keep FIFO order behind tasks already waiting
            self._deferred.append(task)
            return
        try:
            self._queue.put(task)
        except QueueFullError:
            logger.warning(f"⏳ Queue full, task {task.id} of expression {task.expression_id} deferred")
            self._deferred.append(task)

    def flush_deferred(self) -> int:
        """
        Move deferred tasks into the queue while it has room.

        :return: Number of tasks moved
        :rtype: int
        """
        with self._lock:
            return self._flush_locked()

    def _flush_locked(self) -> int:
        moved = 0
        while self._deferred:
            try:
                self._queue.put(self._deferred[0])
            except QueueFullError:
                break
            self._deferred.popleft()
            moved += 1
        return moved

    def abandon(self, expression_id: str) -> int:
        """
        Forget every outstanding task of an expression that can no longer complete.

        Queued and deferred tasks are withdrawn, in-flight steps are dropped.
        A result reported later for one of them raises TaskNotFoundError.

        :param str expression_id: Expression whose tasks are dropped

        :return: Number of in-flight tasks dropped
        :rtype: int
        """
        with self._lock:
            stale = [task_id for task_id, step in self._in_flight.items() if step.expression_id == expression_id]
            for task_id in stale:
                del self._in_flight[task_id]
            self._deferred = deque(task for task in self._deferred if task.expression_id != expression_id)
            self._queue.discard(expression_id)
        return len(stale)
