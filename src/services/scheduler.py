"""
Cooperative multi-interval scheduler.

Each registered task has its own interval and last-run timestamp. Every
pass over the loop compares those against the current time and runs the
tasks that are due, in registration order. Tasks are never preempted, so
each one must return quickly.
"""
from typing import Callable, List, Optional
import threading
import logging
from utils.clock import Clock

logger = logging.getLogger(__name__)


class ScheduledTask:
    """A callback with its interval and the time it last ran"""

    def __init__(self, name: str, interval_ms: int, callback: Callable[[], object]):
        self.name = name
        self.interval_ms = interval_ms
        self.callback = callback
        self.last_run_ms: Optional[int] = None
        self.run_count = 0
        self.failure_count = 0

    def is_due(self, now_ms: int) -> bool:
        if self.last_run_ms is None:
            return True
        return now_ms - self.last_run_ms >= self.interval_ms


class CooperativeScheduler:
    """Round-robin scheduler over an ordered set of ScheduledTasks"""

    def __init__(self, clock: Clock = None):
        self.clock = clock or Clock()
        self.tasks: List[ScheduledTask] = []

    def add_task(self, name: str, interval_ms: int, callback: Callable[[], object]) -> ScheduledTask:
        """
        Register a task; tasks run in the order they were added

        Args:
            name: Task name used in logs
            interval_ms: Minimum time between runs, 0 runs it on every pass
            callback: Function to call when the task is due

        Returns:
            The registered task
        """
        if interval_ms < 0:
            raise ValueError(f"Interval for task {name} must not be negative")
        if any(task.name == name for task in self.tasks):
            raise ValueError(f"Task {name} is already registered")

        task = ScheduledTask(name, interval_ms, callback)
        self.tasks.append(task)
        logger.debug(f"Registered task {name} every {interval_ms} ms")
        return task

    def run_pending(self, now_ms: int = None) -> List[str]:
        """
        Run every task whose interval has elapsed

        A task that raises is logged and counted; the remaining tasks still run.

        Args:
            now_ms: Current monotonic time, read from the clock if omitted

        Returns:
            Names of the tasks that ran
        """
        if now_ms is None:
            now_ms = self.clock.monotonic_ms()

        ran = []
        for task in self.tasks:
            if not task.is_due(now_ms):
                continue

            task.last_run_ms = now_ms
            task.run_count += 1
            ran.append(task.name)
            try:
                task.callback()
            except Exception as e:
                task.failure_count += 1
                logger.error(f"Task {task.name} failed: {e}", exc_info=True)

        return ran

    def run_forever(self, stop_event: threading.Event, tick_ms: int = 50):
        """Run passes until stop_event is set, sleeping tick_ms between them"""
        logger.info(f"Scheduler started with tasks: {', '.join(task.name for task in self.tasks)}")
        while not stop_event.is_set():
            self.run_pending()
            stop_event.wait(tick_ms / 1000)
        logger.info("Scheduler stopped")
