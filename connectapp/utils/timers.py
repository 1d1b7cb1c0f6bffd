from asyncio import Task, TimerHandle, get_running_loop, gather
from typing import Callable, Any, Coroutine

from loguru import logger


class Timer:
    """One-shot timer on the running event loop. Starting it again replaces the pending callback."""

    def __init__(self) -> None:
        self._handle: TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        self.cancel()
        self._handle = get_running_loop().call_later(delay, self._fire, callback, args)

    def _fire(self, callback: Callable[..., Any], args: tuple) -> None:
        self._handle = None
        callback(*args)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class TaskSet:
    """Keeps references to fire-and-forget tasks and logs their failures."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._tasks: set[Task] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Task:
        task = get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._done)
        return task

    def _done(self, task: Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        if (exc := task.exception()) is not None:
            logger.opt(exception=exc).warning(f"Background call failed in {self._name}")

    async def drain(self) -> None:
        while self._tasks:
            await gather(*self._tasks, return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
