"""Remote worker agent polling the server for tasks over HTTP."""
import threading
import time
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from arithmetic_task_server.common.errors import TaskProcessingError
from arithmetic_task_server.common.logger import logger
from arithmetic_task_server.common.models import Task, TaskResult
from arithmetic_task_server.common.operations import apply_operation


class RemoteWorker(BaseModel):
    """
    Worker running outside the server process.

    Lifecycle of one cycle:
        - GET /internal/task; a 404 means no work, so sleep ``poll_interval``
        - Wait ``operation_time`` milliseconds, as announced by the task
        - Compute the task and POST the result to /internal/task
        - A failed computation is logged and not reported; the task is lost
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default="http://127.0.0.1:8080", description="Server base URL")
    poll_interval: float = Field(default=1.0, ge=0, description="Seconds to wait after an empty poll")
    honour_operation_time: bool = Field(default=True, description="Sleep for the task's operation_time before computing")
    timeout: float = Field(default=10.0, gt=0, description="Per-request timeout in seconds")

    def fetch_task(self, http: httpx.Client) -> Optional[Task]:
        """
        Ask the server for one task.

        :return: Task, or None when the queue is empty
        :rtype: Optional[Task]
        """
        response = http.get("/internal/task")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return Task.model_validate(response.json())

    def report_result(self, http: httpx.Client, task: Task, result: float) -> bool:
        """
        Send a task result to the server.

        :return: True if accepted, False if the server no longer knows the task
        :rtype: bool
        """
        payload = TaskResult(id=task.id, result=result)
        response = http.post("/internal/task", json=payload.model_dump())
        if response.status_code == 404:
            logger.warning(f"🛰️ Task {task.id} was unknown to the server, result dropped")
            return False
        response.raise_for_status()
        return True

    def run_once(self, http: httpx.Client) -> bool:
        """
        Run one poll/compute/report cycle.

        :return: True if a task was fetched, False if the queue was empty
        :rtype: bool
        """
        task = self.fetch_task(http)
        if task is None:
            return False

        if self.honour_operation_time and task.operation_time:
            time.sleep(task.operation_time / 1000)

        try:
            result = apply_operation(task)
        except TaskProcessingError as exc:
            logger.error(f"🛰️❌ Task {task.id} failed: {exc}")
            return True

        if self.report_result(http, task, result):
            logger.info(f"🛰️✅ Task {task.id}: {task.arg1} {task.operation} {task.arg2} = {result}")
        return True

    def run(self, max_tasks: Optional[int] = None, stop: Optional[threading.Event] = None) -> int:
        """
        Poll for tasks until stopped or ``max_tasks`` tasks were handled.

        :param max_tasks: Number of tasks to handle before returning, None for no limit
        :param stop: Event ending the loop once set

        :return: Number of tasks handled
        :rtype: int
        """
        handled = 0
        stop = stop or threading.Event()
        logger.info(f"🛰️🏁 Remote worker polling {self.base_url}")
        with httpx.Client(base_url=self.base_url, timeout=self.timeout) as http:
            while not stop.is_set() and (max_tasks is None or handled < max_tasks):
                try:
                    fetched = self.run_once(http)
                except httpx.TransportError as exc:
                    logger.warning(f"🛰️ Server unreachable: {exc}")
                    fetched = False
                if fetched:
                    handled += 1
                else:
                    stop.wait(self.poll_interval)
        logger.info(f"🛰️🛑 Remote worker stopped after {handled} task(s)")
        return handled
