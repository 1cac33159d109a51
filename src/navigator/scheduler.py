"""Bridge handing deferred tasks to an externally driven executor."""

import asyncio
import queue
import threading
from collections.abc import Callable, Coroutine
from typing import Any, Protocol, TypeAlias

import structlog

from src.navigator.constants import COMPONENT_SCHEDULER
from src.navigator.errors import EventLoopClosedError
from src.navigator.metrics import NavigatorMetrics


logger = structlog.get_logger()

DeferredTask: TypeAlias = Coroutine[Any, Any, None]


class HostEventLoop(Protocol):
    """Protocol for the host loop woken when work is queued."""

    def notify_pending_work(self) -> None:
        """Signal that the task queue has new work.

        Raises:
            EventLoopClosedError: If the host loop has already ended.
        """
        ...


class TaskQueue:
    """Thread-safe FIFO of deferred tasks shared with the executor."""

    def __init__(self) -> None:
        """Initialize an empty queue."""
        self._queue: queue.SimpleQueue[DeferredTask] = queue.SimpleQueue()

    def put(self, task: DeferredTask) -> None:
        """Append a task."""
        self._queue.put(task)

    def get_nowait(self) -> DeferredTask | None:
        """Pop the oldest task, or None if the queue is empty."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> list[DeferredTask]:
        """Pop every queued task in submission order."""
        tasks: list[DeferredTask] = []
        while (task := self.get_nowait()) is not None:
            tasks.append(task)
        return tasks

    def empty(self) -> bool:
        """Check whether the queue is empty."""
        return self._queue.empty()

    def __len__(self) -> int:
        return self._queue.qsize()


class TaskScheduler:
    """Queues deferred tasks and wakes the host loop.

    ``spawn`` never runs any part of a task. If the host loop is gone
    the task stays queued and is never driven.
    """

    def __init__(self, task_queue: TaskQueue, host_loop: HostEventLoop) -> None:
        """Initialize the scheduler.

        Args:
            task_queue: Queue shared with the executor.
            host_loop: Loop to notify after each submission.
        """
        self._queue = task_queue
        self._host_loop = host_loop
        self._metrics = NavigatorMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_SCHEDULER)

    @property
    def queue(self) -> TaskQueue:
        """Get the shared task queue."""
        return self._queue

    def spawn(self, task: DeferredTask) -> None:
        """Queue a task and notify the host loop.

        Args:
            task: Deferred computation to run later.
        """
        self._queue.put(task)
        self._metrics.record_task_spawned()

        try:
            self._host_loop.notify_pending_work()
        except EventLoopClosedError:
            self._metrics.record_tasks_abandoned()
            self._log.warning(
                "task_queued_on_closed_loop",
                detail="The task will not be polled.",
            )


class PendingWorkFlag:
    """Host loop backed by a threading event.

    The host waits on the flag, clears it and drives the executor.
    """

    def __init__(self) -> None:
        """Initialize an open, unset flag."""
        self._event = threading.Event()
        self._closed = False
        self._notifications = 0

    @property
    def notifications(self) -> int:
        """Get the number of successful notifications."""
        return self._notifications

    @property
    def closed(self) -> bool:
        """Check whether the flag has been closed."""
        return self._closed

    def notify_pending_work(self) -> None:
        """Set the flag.

        Raises:
            EventLoopClosedError: If the flag has been closed.
        """
        if self._closed:
            msg = "Host event loop has already ended"
            raise EventLoopClosedError(msg)
        self._notifications += 1
        self._event.set()

    def is_set(self) -> bool:
        """Check whether work is pending."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until work is pending or the timeout expires."""
        return self._event.wait(timeout)

    def clear(self) -> None:
        """Acknowledge pending work."""
        self._event.clear()

    def close(self) -> None:
        """End the loop; later notifications fail."""
        self._closed = True
        self._event.clear()


class AsyncioHostLoop:
    """Host loop that wakes a running asyncio event loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_pending_work: Callable[[], None],
    ) -> None:
        """Initialize the host loop adapter.

        Args:
            loop: Event loop owned by the host.
            on_pending_work: Callback scheduled on the loop per notification.
        """
        self._loop = loop
        self._on_pending_work = on_pending_work

    def notify_pending_work(self) -> None:
        """Schedule the callback on the host loop.

        Raises:
            EventLoopClosedError: If the loop is closed.
        """
        try:
            self._loop.call_soon_threadsafe(self._on_pending_work)
        except RuntimeError as e:
            raise EventLoopClosedError(str(e)) from e
