"""Database connection management"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from quest_analytics.config import DATABASE_URL, DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE
from quest_analytics.exceptions import StoreConnectionError

logger = logging.getLogger(__name__)


class Database:
    """
    PostgreSQL connection pool for the quest and achievement tables.

    Services and query functions never use this class directly. Every
    connection is checked out by the DBQueue worker, which runs one storage
    task at a time, so the pool only ever serves that single caller.
    """

    def __init__(self, connection_string: str = DATABASE_URL):
        self.connection_string = connection_string
        self._pool: Optional[AsyncConnectionPool] = None

    async def init_pool(self) -> None:
        logger.info(f"Opening connection pool (min={DB_POOL_MIN_SIZE}, max={DB_POOL_MAX_SIZE})")
        self._pool = AsyncConnectionPool(
            self.connection_string,
            min_size=DB_POOL_MIN_SIZE,
            max_size=DB_POOL_MAX_SIZE,
            open=False
        )
        await self._pool.open()

    async def close_pool(self) -> None:
        if self._pool:
            logger.info("Closing connection pool")
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Borrow a connection whose cursors return dict rows

        Raises:
            StoreConnectionError: init_pool() has not run or the pool was closed
        """
        if not self._pool:
            raise StoreConnectionError(
                "Connection pool is not open",
                operation="connection"
            )

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn


# Global database instance, drained only by db_queue
db = Database()
