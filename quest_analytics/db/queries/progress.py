"""User progress and leaderboard queries"""
import logging
from typing import Optional

from quest_analytics.db.queue import DBQueue, db_queue
from quest_analytics.db.queries.users import row_to_user
from quest_analytics.models.progress import ProgressStatus, UserProgress
from quest_analytics.models.statistics import LeaderboardEntry

logger = logging.getLogger(__name__)


async def get_user_progress(user_id: int, queue: Optional[DBQueue] = None) -> list[UserProgress]:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, step_id, status, completed_at
                FROM user_progress
                WHERE user_id = %s
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [UserProgress(**row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_user_progress")


async def count_progress_by_step(step_id: int, status: ProgressStatus, queue: Optional[DBQueue] = None) -> int:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count FROM user_progress
                WHERE step_id = %s AND status = %s
                """,
                (step_id, status.value)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    return await (queue or db_queue).execute(_query, operation="count_progress_by_step")


async def count_answered_steps(user_id: int, queue: Optional[DBQueue] = None) -> int:
    """Active steps the user has approved or skipped"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM user_progress p
                JOIN steps st ON p.step_id = st.id
                WHERE p.user_id = %s
                  AND p.status IN ('approved', 'skipped')
                  AND st.is_active = TRUE AND st.is_deleted = FALSE
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    return await (queue or db_queue).execute(_query, operation="count_answered_steps")


async def get_leaderboard_entries(queue: Optional[DBQueue] = None) -> list[LeaderboardEntry]:
    """
    Progress metric for every registered user, unsorted

    max_step is the highest approved active step (0 if none); reached_at is
    when that step was approved, falling back to registration time.
    """
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT u.id, u.first_name, u.last_name, u.username, u.is_blocked, u.created_at,
                       COALESCE(best.step_order, 0) AS max_step,
                       COALESCE(best.completed_at, u.created_at) AS reached_at
                FROM users u
                LEFT JOIN LATERAL (
                    SELECT st.step_order, p.completed_at
                    FROM user_progress p
                    JOIN steps st ON p.step_id = st.id
                         AND st.is_active = TRUE AND st.is_deleted = FALSE
                    WHERE p.user_id = u.id AND p.status = 'approved'
                    ORDER BY st.step_order DESC
                    LIMIT 1
                ) best ON TRUE
                """
            )
            rows = await cur.fetchall()
            return [
                LeaderboardEntry(
                    user=row_to_user(row),
                    max_step=row["max_step"],
                    reached_at=row["reached_at"],
                )
                for row in rows
            ]

    return await (queue or db_queue).execute(_query, operation="get_leaderboard_entries")


async def get_user_max_step(user_id: int, queue: Optional[DBQueue] = None) -> int:
    """Highest approved active step order for the user (0 if none)"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COALESCE(MAX(st.step_order), 0) AS max_step
                FROM user_progress p
                JOIN steps st ON p.step_id = st.id
                     AND st.is_active = TRUE AND st.is_deleted = FALSE
                WHERE p.user_id = %s AND p.status = 'approved'
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return row["max_step"] if row else 0

    return await (queue or db_queue).execute(_query, operation="get_user_max_step")


async def count_approved_asterisk_steps(user_id: int, queue: Optional[DBQueue] = None) -> int:
    """Active asterisk steps the user has approved"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COUNT(*) AS count
                FROM user_progress p
                JOIN steps st ON p.step_id = st.id
                WHERE p.user_id = %s AND p.status = 'approved'
                  AND st.is_asterisk = TRUE AND st.is_active = TRUE AND st.is_deleted = FALSE
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    return await (queue or db_queue).execute(_query, operation="count_approved_asterisk_steps")
