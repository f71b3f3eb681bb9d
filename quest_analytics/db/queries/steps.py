"""Quest step catalog queries"""
import logging
from typing import Iterable, Optional

from quest_analytics.db.queue import DBQueue, db_queue
from quest_analytics.models.statistics import AsteriskStepStats
from quest_analytics.models.step import Step

logger = logging.getLogger(__name__)


async def get_active_steps(queue: Optional[DBQueue] = None) -> list[Step]:
    """Active, non-deleted steps in display order"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, step_order, text, is_active, is_deleted, is_asterisk, created_at
                FROM steps
                WHERE is_active = TRUE AND is_deleted = FALSE
                ORDER BY step_order
                """
            )
            rows = await cur.fetchall()
            return [Step(**row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_active_steps")


async def count_active_steps(queue: Optional[DBQueue] = None) -> int:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count FROM steps
                WHERE is_active = TRUE AND is_deleted = FALSE
                """
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    return await (queue or db_queue).execute(_query, operation="count_active_steps")


async def get_step_orders(step_ids: Iterable[int], queue: Optional[DBQueue] = None) -> dict[int, int]:
    """
    Display order of the given steps, deleted ones included

    Returns:
        {step_id: step_order}; unknown ids are absent
    """
    ids = list(step_ids)
    if not ids:
        return {}

    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT id, step_order FROM steps WHERE id = ANY(%s)",
                (ids,)
            )
            rows = await cur.fetchall()
            return {row["id"]: row["step_order"] for row in rows}

    return await (queue or db_queue).execute(_query, operation="get_step_orders")


async def count_asterisk_steps(queue: Optional[DBQueue] = None) -> int:
    """Active, non-deleted optional (asterisk) steps"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count FROM steps
                WHERE is_asterisk = TRUE AND is_active = TRUE AND is_deleted = FALSE
                """
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    return await (queue or db_queue).execute(_query, operation="count_asterisk_steps")


async def get_asterisk_step_stats(queue: Optional[DBQueue] = None) -> list[AsteriskStepStats]:
    """Approved and skipped counts per active asterisk step, in display order"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT st.id AS step_id, st.step_order, st.text,
                       COUNT(p.user_id) FILTER (WHERE p.status = 'approved') AS answered_count,
                       COUNT(p.user_id) FILTER (WHERE p.status = 'skipped') AS skipped_count
                FROM steps st
                LEFT JOIN user_progress p ON p.step_id = st.id
                     AND p.status IN ('approved', 'skipped')
                WHERE st.is_asterisk = TRUE AND st.is_active = TRUE AND st.is_deleted = FALSE
                GROUP BY st.id, st.step_order, st.text
                ORDER BY st.step_order
                """
            )
            rows = await cur.fetchall()
            return [AsteriskStepStats(**row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_asterisk_step_stats")
