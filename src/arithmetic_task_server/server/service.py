"""Calculator service: the single owner of expression and task state."""
import math
import threading
from typing import List, Mapping, Optional
import uuid

from arithmetic_task_server.common.errors import EvaluationError, TaskProcessingError
from arithmetic_task_server.common.logger import logger
from arithmetic_task_server.common.models import Expression, Task
from arithmetic_task_server.common.operations import apply_operation
from arithmetic_task_server.common.parser import Evaluator, ExpressionParser
from arithmetic_task_server.server.registry import ExpressionRegistry
from arithmetic_task_server.server.scheduler import TaskScheduler
from arithmetic_task_server.server.task_queue import TaskQueue


class CalculatorService:
    """
    Owns the registry, the task queue and the scheduler.

    One instance is shared by every HTTP handler and by the agent loop;
    tests build their own isolated instance.
    """

    def __init__(
        self,
        evaluator: Optional[Evaluator] = None,
        queue_capacity: int = 10,
        operation_times: Optional[Mapping[str, int]] = None,
    ) -> None:
        self.evaluator: Evaluator = evaluator or ExpressionParser()
        self.registry = ExpressionRegistry()
        self.queue = TaskQueue(queue_capacity)
        self.scheduler = TaskScheduler(self.registry, self.queue, operation_times)

    def submit(self, text: str) -> Expression:
        """
        Validate an expression and schedule its evaluation.

        :param str text: Expression text

        :return: The new pending (or, for a bare number, completed) expression
        :rtype: Expression
        :raises ParseError: If the evaluator rejects the syntax
        :raises EvaluationError: If the evaluator cannot compute a finite value
        :raises QueueFullError: If the task queue is full
        """
        # The evaluator only gates validity; the value itself is computed by the tasks
        value = self.evaluator.evaluate(text)
        if not math.isfinite(value):
            raise EvaluationError(f"Expression does not evaluate to a finite number: {text}")

        program = ExpressionParser.compile(text)
        expression = Expression(id=str(uuid.uuid4()), expression=text)
        return self.scheduler.submit(expression, program)

    def get_expression(self, expression_id: str) -> Expression:
        return self.registry.get(expression_id)

    def list_expressions(self) -> List[Expression]:
        return self.registry.list()

    def next_task(self) -> Optional[Task]:
        """
        Hand out the oldest queued task without waiting.

        :return: Task, or None when no task is available
        :rtype: Optional[Task]
        """
        task = self.queue.get_nowait()
        if task is not None:
            self.scheduler.flush_deferred()
        return task

    def wait_for_task(self, cancel: Optional[threading.Event] = None, timeout: Optional[float] = None) -> Optional[Task]:
        """Like ``next_task`` but suspends until a task arrives or ``cancel`` is set."""
        task = self.queue.get(cancel=cancel, timeout=timeout)
        if task is not None:
            self.scheduler.flush_deferred()
        return task

    def complete_task(self, task_id: str, result: float) -> Optional[Expression]:
        """
        Record a task result.

        :return: The completed expression if this was its last task, else None
        :raises TaskNotFoundError: If the task is unknown or already completed
        """
        completed = self.scheduler.complete(task_id, result)
        if completed is not None:
            logger.info(f"✅ Expression {completed.id} completed: {completed.result}")
        return completed

    def process_task(self, task: Task) -> Optional[Expression]:
        """
        Compute a task and record its result.

        A failed operation abandons the remaining tasks of its expression,
        which stays pending.

        :raises TaskProcessingError: If the operation fails; nothing is recorded then
        """
        try:
            result = apply_operation(task)
        except TaskProcessingError:
            dropped = self.scheduler.abandon(task.expression_id)
            logger.debug(f"🗑️ Expression {task.expression_id} abandoned, {dropped} task(s) dropped")
            raise
        return self.complete_task(task.id, result)
