import asyncio
import uuid
from typing import Dict, Any, Callable, Awaitable, Optional, Set
from datetime import datetime, timezone

from loguru import logger


class TaskStatus:
    """Task status constants"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TaskManager:
    """
    Manager for background tasks with tracking and retrieval

    Tasks may carry a key (the analysis server uses the session id); while a
    task with a given key is pending or running, adding another one with the
    same key returns the existing task id instead of scheduling a duplicate.
    """

    def __init__(self, max_tasks: int = 1000):
        self.tasks: Dict[str, Dict[str, Any]] = {}
        self.max_tasks = max_tasks  # Limit to prevent memory issues
        self._active_keys: Dict[str, str] = {}
        self._running: Set[asyncio.Task] = set()

    async def add_task(
            self,
            func: Callable[..., Awaitable[Any]],
            *args,
            key: Optional[str] = None,
            **kwargs
    ) -> str:
        """
        Add a task to the task manager

        Args:
            func: Async function to call
            *args: Positional arguments for the function
            key: Optional deduplication key
            **kwargs: Keyword arguments for the function

        Returns:
            Task ID, the existing one if a task with `key` is still active
        """
        if key is not None and key in self._active_keys:
            task_id = self._active_keys[key]
            logger.debug(f"Task for {key} already active as {task_id}")
            return task_id

        self._cleanup_old_tasks()

        task_id = str(uuid.uuid4())
        self.tasks[task_id] = {
            "id": task_id,
            "key": key,
            "status": TaskStatus.PENDING,
            "created_at": datetime.now(timezone.utc),
            "started_at": None,
            "completed_at": None,
            "result": None,
            "error": None
        }
        if key is not None:
            self._active_keys[key] = task_id

        # Keep a reference so the task isn't garbage collected mid-flight
        task = asyncio.create_task(self._run_task(task_id, func, *args, **kwargs))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

        return task_id

    async def _run_task(
            self,
            task_id: str,
            func: Callable[..., Awaitable[Any]],
            *args,
            **kwargs
    ) -> None:
        """
        Run a task and update its status
        """
        record = self.tasks[task_id]
        record["status"] = TaskStatus.RUNNING
        record["started_at"] = datetime.now(timezone.utc)

        try:
            result = await func(*args, **kwargs)

            record["status"] = TaskStatus.COMPLETED
            record["result"] = result
        except Exception as e:
            record["status"] = TaskStatus.FAILED
            record["error"] = str(e)
            logger.error(f"Task {task_id} failed: {e}")
        finally:
            record["completed_at"] = datetime.now(timezone.utc)
            if record["key"] is not None and self._active_keys.get(record["key"]) == task_id:
                del self._active_keys[record["key"]]

    def is_active(self, key: str) -> bool:
        """Whether a task with this key is pending or running"""
        return key in self._active_keys

    def get_task_status(self, task_id: str) -> Optional[Dict[str, Any]]:
        """
        Get task status

        Returns:
            Task status dict if found, None otherwise
        """
        return self.tasks.get(task_id)

    async def wait_all(self) -> None:
        """Wait for every task scheduled so far to finish"""
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel tasks still running, used on application shutdown"""
        for task in list(self._running):
            task.cancel()
        await self.wait_all()
        self._active_keys.clear()

    def _cleanup_old_tasks(self) -> None:
        """
        Remove old finished tasks to prevent memory leaks
        """
        if len(self.tasks) <= self.max_tasks:
            return

        sorted_tasks = sorted(
            self.tasks.items(),
            key=lambda x: x[1]["created_at"]
        )

        tasks_to_remove = sorted_tasks[:len(sorted_tasks) - self.max_tasks // 2]
        for task_id, _ in tasks_to_remove:
            if self.tasks[task_id]["status"] in [TaskStatus.COMPLETED, TaskStatus.FAILED]:
                del self.tasks[task_id]


# Create singleton instance
task_manager = TaskManager()
