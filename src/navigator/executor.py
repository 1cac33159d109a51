"""Host-side executor driving deferred tasks on an asyncio loop."""

import asyncio
from types import TracebackType

import structlog

from src.navigator.constants import COMPONENT_EXECUTOR
from src.navigator.metrics import NavigatorMetrics
from src.navigator.scheduler import TaskQueue


logger = structlog.get_logger()


class TaskExecutor:
    """Drives tasks queued by the scheduler.

    The executor owns an asyncio event loop and only makes progress when
    the host calls ``poll_tasks`` / ``run_until_idle``. Completion order
    between tasks is not guaranteed. Failures are logged, never raised.
    """

    def __init__(
        self,
        task_queue: TaskQueue,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            task_queue: Queue shared with the scheduler.
            loop: Event loop to drive tasks on (default: a new private loop).
        """
        self._queue = task_queue
        self._owns_loop = loop is None
        self._loop = loop or asyncio.new_event_loop()
        self._running: set[asyncio.Task[None]] = set()
        self._finished = 0
        self._closed = False
        self._metrics = NavigatorMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_EXECUTOR)

    @property
    def running(self) -> int:
        """Get the number of started, unfinished tasks."""
        return len(self._running)

    @property
    def closed(self) -> bool:
        """Check whether the executor has been closed."""
        return self._closed

    def poll_tasks(self) -> int:
        """Start every queued task on the loop.

        Returns:
            Number of tasks taken from the queue.
        """
        tasks = self._queue.drain()
        for task in tasks:
            handle = self._loop.create_task(task)
            self._running.add(handle)
            handle.add_done_callback(self._on_task_done)
        if tasks:
            self._log.debug("tasks_started", count=len(tasks))
        return len(tasks)

    def run_until_idle(self) -> int:
        """Run the loop until no queued or running tasks remain.

        Tasks spawned by running tasks are picked up as well.

        Returns:
            Number of tasks that finished during the call.
        """
        finished_before = self._finished
        while True:
            self.poll_tasks()
            if not self._running:
                break
            self._loop.run_until_complete(asyncio.wait(set(self._running)))
        return self._finished - finished_before

    def close(self) -> int:
        """Stop driving tasks.

        Queued tasks are discarded without being started and running
        tasks are cancelled.

        Returns:
            Number of abandoned tasks.
        """
        if self._closed:
            return 0

        abandoned = 0
        for task in self._queue.drain():
            task.close()
            abandoned += 1

        if self._running:
            pending = set(self._running)
            for handle in pending:
                handle.cancel()
            abandoned += len(pending)
            self._loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        if self._owns_loop:
            self._loop.close()
        self._closed = True

        if abandoned:
            self._metrics.record_tasks_abandoned(abandoned)
            self._log.warning("tasks_abandoned", count=abandoned)
        return abandoned

    def __enter__(self) -> "TaskExecutor":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _on_task_done(self, handle: asyncio.Task[None]) -> None:
        self._running.discard(handle)
        if handle.cancelled():
            return

        self._finished += 1
        error = handle.exception()
        if error is None:
            self._metrics.record_task_completed()
            return

        self._metrics.record_task_failed()
        self._log.error(
            "task_failed",
            error_type=type(error).__name__,
            error=str(error),
        )
