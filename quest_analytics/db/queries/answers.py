"""Answer submission queries"""
import logging
from datetime import datetime
from typing import Optional

from quest_analytics.db.queue import DBQueue, db_queue
from quest_analytics.models.statistics import (
    DropoffPoint,
    HintStepStats,
    SpeedrunRecord,
    StubbornRecord,
)

logger = logging.getLogger(__name__)


async def get_user_answer_times(user_id: int, queue: Optional[DBQueue] = None) -> list[datetime]:
    """Submission times of every answer by the user, oldest first"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT created_at FROM user_answers
                WHERE user_id = %s
                ORDER BY created_at ASC, id ASC
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [row["created_at"] for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_user_answer_times")


async def count_user_answers(user_id: int, queue: Optional[DBQueue] = None) -> int:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT COUNT(*) AS count FROM user_answers WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    return await (queue or db_queue).execute(_query, operation="count_user_answers")


async def count_user_answers_by_step(user_id: int, queue: Optional[DBQueue] = None) -> dict[int, int]:
    """
    Answers submitted per step

    Returns:
        {step_id: attempts}
    """
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT step_id, COUNT(*) AS attempts
                FROM user_answers
                WHERE user_id = %s
                GROUP BY step_id
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return {row["step_id"]: row["attempts"] for row in rows}

    return await (queue or db_queue).execute(_query, operation="count_user_answers_by_step")


# ==========================================
# Per-step analytics (limit=None renders LIMIT NULL, i.e. no cap)
# ==========================================

async def get_hint_stats(limit: Optional[int], queue: Optional[DBQueue] = None) -> list[HintStepStats]:
    """Active steps ranked by answers submitted with a hint"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT st.step_order, st.text AS step_text, COUNT(ua.id) AS hint_count
                FROM steps st
                JOIN user_answers ua ON ua.step_id = st.id AND ua.hint_used = TRUE
                WHERE st.is_active = TRUE AND st.is_deleted = FALSE
                GROUP BY st.id, st.step_order, st.text
                ORDER BY hint_count DESC, st.step_order
                LIMIT %s
                """,
                (limit,)
            )
            rows = await cur.fetchall()
            return [HintStepStats(**row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_hint_stats")


async def get_speedruns(limit: Optional[int], queue: Optional[DBQueue] = None) -> list[SpeedrunRecord]:
    """
    Fastest players, furthest step first

    duration_min is minutes between the user's first and last answer on
    active steps; users with a single instant of activity are left out.
    """
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT COALESCE(MAX(step_order), 0) AS last_step
                FROM steps WHERE is_active = TRUE AND is_deleted = FALSE
                """
            )
            row = await cur.fetchone()
            last_step = row["last_step"] if row else 0

            await cur.execute(
                """
                SELECT * FROM (
                    SELECT u.first_name, u.username,
                           ROUND((EXTRACT(EPOCH FROM MAX(ua.created_at) - MIN(ua.created_at)) / 60)::numeric, 1)
                               AS duration_min,
                           MAX(st.step_order) AS max_step
                    FROM user_answers ua
                    JOIN users u ON u.id = ua.user_id
                    JOIN steps st ON st.id = ua.step_id
                    WHERE st.is_active = TRUE AND st.is_deleted = FALSE
                    GROUP BY ua.user_id, u.first_name, u.username
                ) runs
                WHERE duration_min > 0
                ORDER BY max_step DESC, duration_min ASC
                LIMIT %s
                """,
                (limit,)
            )
            rows = await cur.fetchall()
            return [
                SpeedrunRecord(
                    first_name=row["first_name"] or "",
                    username=row["username"] or "",
                    duration_min=float(row["duration_min"]),
                    max_step=row["max_step"],
                    is_finisher=last_step > 0 and row["max_step"] >= last_step,
                )
                for row in rows
            ]

    return await (queue or db_queue).execute(_query, operation="get_speedruns")


async def get_stubborn_records(limit: Optional[int], queue: Optional[DBQueue] = None) -> list[StubbornRecord]:
    """Most answers submitted by one user on one step"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT u.first_name, u.username, st.step_order, COUNT(ua.id) AS attempts
                FROM user_answers ua
                JOIN users u ON u.id = ua.user_id
                JOIN steps st ON st.id = ua.step_id
                GROUP BY ua.user_id, ua.step_id, u.first_name, u.username, st.step_order
                ORDER BY attempts DESC, st.step_order
                LIMIT %s
                """,
                (limit,)
            )
            rows = await cur.fetchall()
            return [
                StubbornRecord(
                    first_name=row["first_name"] or "",
                    username=row["username"] or "",
                    step_order=row["step_order"],
                    attempts=row["attempts"],
                )
                for row in rows
            ]

    return await (queue or db_queue).execute(_query, operation="get_stubborn_records")


async def get_dropoff_points(limit: Optional[int], queue: Optional[DBQueue] = None) -> list[DropoffPoint]:
    """
    Steps where players most often stopped

    A user drops off at the furthest active step they answered. The final
    active step and steps nobody stopped at are left out.
    """
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                WITH last_steps AS (
                    SELECT ua.user_id, MAX(st.step_order) AS last_step
                    FROM user_answers ua
                    JOIN steps st ON st.id = ua.step_id
                    WHERE st.is_active = TRUE AND st.is_deleted = FALSE
                    GROUP BY ua.user_id
                ),
                step_starters AS (
                    SELECT st.step_order, st.text, COUNT(DISTINCT ua.user_id) AS starters
                    FROM steps st
                    JOIN user_answers ua ON ua.step_id = st.id
                    WHERE st.is_active = TRUE AND st.is_deleted = FALSE
                    GROUP BY st.step_order, st.text
                ),
                step_droppers AS (
                    SELECT last_step AS step_order, COUNT(*) AS dropped
                    FROM last_steps GROUP BY last_step
                )
                SELECT ss.step_order, ss.text AS step_text, ss.starters,
                       COALESCE(sd.dropped, 0) AS dropped,
                       ROUND(100.0 * COALESCE(sd.dropped, 0) / ss.starters, 1) AS drop_pct
                FROM step_starters ss
                LEFT JOIN step_droppers sd ON sd.step_order = ss.step_order
                WHERE ss.step_order <> (
                    SELECT MAX(step_order) FROM steps WHERE is_active = TRUE AND is_deleted = FALSE
                )
                  AND COALESCE(sd.dropped, 0) > 0
                ORDER BY drop_pct DESC, dropped DESC
                LIMIT %s
                """,
                (limit,)
            )
            rows = await cur.fetchall()
            return [
                DropoffPoint(
                    step_order=row["step_order"],
                    step_text=row["step_text"],
                    dropped=row["dropped"],
                    starters=row["starters"],
                    drop_pct=float(row["drop_pct"]),
                )
                for row in rows
            ]

    return await (queue or db_queue).execute(_query, operation="get_dropoff_points")
