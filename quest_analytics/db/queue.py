"""
Serialized storage access

Every read and write goes through one worker so the storage engine only ever
sees a single caller at a time. Callers await their own result; a
multi-query aggregate is not atomic across its queries.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

import psycopg

from quest_analytics.config import DB_QUEUE_SIZE
from quest_analytics.db.connection import Database, db
from quest_analytics.exceptions import wrap_store_exception
from quest_analytics.observability.metrics import (
    db_queue_depth,
    db_queue_task_duration_seconds,
    db_queue_tasks_total,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Task = Callable[[psycopg.AsyncConnection], Awaitable[T]]


class DBQueue:
    """Single-worker queue in front of the connection pool"""

    def __init__(self, database: Database = db, maxsize: int = DB_QUEUE_SIZE):
        self.database = database
        self.maxsize = maxsize
        self._tasks: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return (
            self._worker is not None
            and not self._worker.done()
            and self._worker.get_loop() is asyncio.get_running_loop()
        )

    def start(self) -> None:
        """Start the worker on the running event loop"""
        if self.running:
            return
        self._tasks = asyncio.Queue(maxsize=self.maxsize)
        self._worker = asyncio.create_task(self._run())
        logger.info(f"Storage queue worker started (capacity: {self.maxsize})")

    async def stop(self) -> None:
        """Drain pending tasks and stop the worker"""
        if not self.running:
            return
        await self._tasks.put(None)
        await self._worker
        self._worker = None
        self._tasks = None
        logger.info("Storage queue worker stopped")

    async def execute(self, task: Task, operation: str = "query") -> Any:
        """
        Run task(conn) on the worker and return its result

        Args:
            task: Coroutine function receiving a dict_row connection
            operation: Name used for logs and metrics

        Raises:
            StoreError: The storage engine failed (wrapped psycopg error)
        """
        if not self.running:
            self.start()

        future = asyncio.get_running_loop().create_future()
        await self._tasks.put((task, operation, future))
        db_queue_depth.set(self._tasks.qsize())
        return await future

    async def _run(self) -> None:
        while True:
            item = await self._tasks.get()
            try:
                if item is None:
                    return
                task, operation, future = item
                if future.done():
                    continue
                await self._execute_one(task, operation, future)
            finally:
                self._tasks.task_done()
                db_queue_depth.set(self._tasks.qsize())

    async def _execute_one(self, task: Task, operation: str, future: asyncio.Future) -> None:
        started = time.perf_counter()
        status = "success"
        try:
            async with self.database.connection() as conn:
                result = await task(conn)
        except psycopg.Error as e:
            status = "error"
            error = wrap_store_exception(e, operation=operation)
            if not future.done():
                future.set_exception(error)
        except Exception as e:
            status = "error"
            if not future.done():
                future.set_exception(e)
        else:
            if not future.done():
                future.set_result(result)
        finally:
            elapsed = time.perf_counter() - started
            db_queue_tasks_total.labels(operation=operation, status=status).inc()
            db_queue_task_duration_seconds.labels(operation=operation).observe(elapsed)
            logger.debug(f"Storage task {operation} finished in {elapsed * 1000:.1f}ms ({status})")


# Global queue instance
db_queue = DBQueue()
