import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from chainxchange.core.exceptions import QueueClosedError

logger = logging.getLogger(__name__)

Handler = Callable[[str, Optional[dict]], Awaitable[Any]]


@dataclass
class QueueTask:
    url: str
    params: Optional[dict]
    future: asyncio.Future = field(repr=False)


class SerializedRequestQueue:
    """FIFO queue drained by a single worker.

    Exactly one handler call is running at any time, so every upstream request
    made through the queue shares one pipe and one rate limit.
    """

    def __init__(self, handler: Handler, name: str = "coingecko"):
        self._handler = handler
        self.name = name
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._current: Optional[QueueTask] = None
        self._closed = False
        self.processed = 0
        self.failed = 0
        self.skipped = 0

    async def submit(self, url: str, params: Optional[dict] = None) -> Any:
        if self._closed:
            raise QueueClosedError(f"{self.name} queue is closed")
        self._ensure_worker()

        future = asyncio.get_running_loop().create_future()
        await self._queue.put(QueueTask(url=url, params=params, future=future))
        return await future

    def _ensure_worker(self):
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name=f"{self.name}-queue-worker")

    async def _run(self):
        while True:
            task = await self._queue.get()
            try:
                if task.future.done():
                    # The waiter gave up (caller timeout); don't spend the rate limit on it
                    self.skipped += 1
                    continue

                logger.debug(f"Processing {self.name} request: {task.url}")
                self._current = task
                try:
                    result = await self._handler(task.url, task.params)
                except Exception as e:
                    self.failed += 1
                    if not task.future.done():
                        task.future.set_exception(e)
                else:
                    self.processed += 1
                    if not task.future.done():
                        task.future.set_result(result)
            finally:
                self._current = None
                self._queue.task_done()

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "pending": self.pending,
            "processed": self.processed,
            "failed": self.failed,
            "skipped": self.skipped,
            "running": self._worker is not None and not self._worker.done(),
        }

    async def close(self):
        self._closed = True
        if self._worker is not None:
            current = self._current
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
            if current is not None and not current.future.done():
                current.future.set_exception(QueueClosedError(f"{self.name} queue closed while request was running"))

        if self._queue is not None:
            while not self._queue.empty():
                task = self._queue.get_nowait()
                if not task.future.done():
                    task.future.set_exception(QueueClosedError(f"{self.name} queue closed before request ran"))
                self._queue.task_done()
