"""In-process agent that drains the task queue."""
import threading
from typing import Optional

from arithmetic_task_server.common.errors import TaskNotFoundError, TaskProcessingError
from arithmetic_task_server.common.logger import logger
from arithmetic_task_server.server.service import CalculatorService


class AgentLoop:
    """
    Background consumer computing queued tasks inside the server process.

    Lifecycle:
        - Started once at application startup, runs in a daemon thread
        - Suspends on the queue while it is empty, woken by the next enqueue
        - A failed task is logged and its expression abandoned; the loop keeps running
        - Stopped at shutdown through ``stop``, which cancels the wait and joins the thread
    """

    def __init__(self, service: CalculatorService, name: str = "agent-loop") -> None:
        self.service = service
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.processed = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"👷🏁 Agent loop {self.name} started")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Cancel the loop and wait for its thread to exit."""
        self._stop.set()
        self.service.queue.wake_all()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info(f"👷🛑 Agent loop {self.name} stopped")

    def run(self) -> None:
        """Process tasks until stopped."""
        while not self._stop.is_set():
            task = self.service.wait_for_task(cancel=self._stop)
            if task is None:
                continue

            try:
                self.service.process_task(task)
                self.processed += 1
                logger.debug(f"👷✅ Task {task.id} processed: {task.arg1} {task.operation} {task.arg2}")
            except TaskProcessingError as exc:
                logger.error(
                    f"👷❌ Task {task.id} failed: {exc}\n"
                    f"Expression {task.expression_id} stays pending"
                )
                self.failed += 1
            except TaskNotFoundError:
                logger.warning(f"👷 Task {task.id} belongs to an abandoned expression, result dropped")
            except Exception:
                logger.exception(f"👷❌ Unexpected error while processing task {task.id}")
                self.failed += 1
