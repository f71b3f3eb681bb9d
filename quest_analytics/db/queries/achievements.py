"""Achievement catalog and award queries"""
import logging
from typing import Optional
from datetime import datetime

from quest_analytics.db.queue import DBQueue, db_queue
from quest_analytics.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementConditions,
    UserAchievement,
)

logger = logging.getLogger(__name__)

_ACHIEVEMENT_COLUMNS = """
    id, key, name, description, category, type, is_unique, conditions, created_at, is_active
"""

_USER_ACHIEVEMENT_COLUMNS = """
    ua.id, ua.user_id, ua.achievement_id, ua.assigned_at, ua.is_secret
"""


def _row_to_achievement(row: dict) -> Achievement:
    conditions = row.get("conditions")
    if isinstance(conditions, dict):
        parsed = AchievementConditions.model_validate(conditions)
    else:
        parsed = AchievementConditions.from_json(conditions)

    return Achievement(
        id=row["id"],
        key=row["key"],
        name=row["name"],
        description=row["description"] or "",
        category=row["category"],
        type=row["type"],
        is_unique=bool(row["is_unique"]),
        conditions=parsed,
        created_at=row.get("created_at"),
        is_active=bool(row["is_active"]),
    )


def _row_to_user_achievement(row: dict) -> UserAchievement:
    return UserAchievement(
        id=row["id"],
        user_id=row["user_id"],
        achievement_id=row["achievement_id"],
        assigned_at=row["assigned_at"],
        is_secret=bool(row["is_secret"]),
    )


# ==========================================
# Catalog
# ==========================================

async def create_achievement(achievement: Achievement, queue: Optional[DBQueue] = None) -> Optional[dict]:
    """
    Insert a catalog row

    Returns:
        {'id': int, 'created_at': datetime}, or None when the key already exists
    """
    async def _insert(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO achievements (key, name, description, category, type, is_unique, conditions, is_active)
                VALUES (%s, %s, %s, %s, %s, %s, %s::jsonb, %s)
                ON CONFLICT (key) DO NOTHING
                RETURNING id, created_at
                """,
                (
                    achievement.key,
                    achievement.name,
                    achievement.description,
                    achievement.category.value,
                    achievement.type.value,
                    achievement.is_unique,
                    achievement.conditions.to_json(),
                    achievement.is_active,
                )
            )
            row = await cur.fetchone()
        await conn.commit()
        return dict(row) if row else None

    return await (queue or db_queue).execute(_insert, operation="create_achievement")


async def update_achievement(achievement: Achievement, queue: Optional[DBQueue] = None) -> int:
    """
    Update every mutable field by id (key is immutable)

    Returns:
        Number of rows updated (0 when the id is unknown)
    """
    async def _update(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                UPDATE achievements
                SET name = %s,
                    description = %s,
                    category = %s,
                    type = %s,
                    is_unique = %s,
                    conditions = %s::jsonb,
                    is_active = %s
                WHERE id = %s
                """,
                (
                    achievement.name,
                    achievement.description,
                    achievement.category.value,
                    achievement.type.value,
                    achievement.is_unique,
                    achievement.conditions.to_json(),
                    achievement.is_active,
                    achievement.id,
                )
            )
            updated = cur.rowcount
        await conn.commit()
        return updated

    return await (queue or db_queue).execute(_update, operation="update_achievement")


async def get_achievement_by_id(achievement_id: int, queue: Optional[DBQueue] = None) -> Optional[Achievement]:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_ACHIEVEMENT_COLUMNS} FROM achievements WHERE id = %s",
                (achievement_id,)
            )
            row = await cur.fetchone()
            return _row_to_achievement(row) if row else None

    return await (queue or db_queue).execute(_query, operation="get_achievement_by_id")


async def get_achievement_by_key(key: str, queue: Optional[DBQueue] = None) -> Optional[Achievement]:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_ACHIEVEMENT_COLUMNS} FROM achievements WHERE key = %s",
                (key,)
            )
            row = await cur.fetchone()
            return _row_to_achievement(row) if row else None

    return await (queue or db_queue).execute(_query, operation="get_achievement_by_key")


async def get_all_achievements(queue: Optional[DBQueue] = None) -> list[Achievement]:
    """Whole catalog in insertion order"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_ACHIEVEMENT_COLUMNS} FROM achievements ORDER BY created_at, id"
            )
            rows = await cur.fetchall()
            return [_row_to_achievement(row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_all_achievements")


async def get_active_achievements(queue: Optional[DBQueue] = None) -> list[Achievement]:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_ACHIEVEMENT_COLUMNS} FROM achievements
                WHERE is_active = TRUE
                ORDER BY created_at, id
                """
            )
            rows = await cur.fetchall()
            return [_row_to_achievement(row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_active_achievements")


async def get_achievements_by_category(category: AchievementCategory, queue: Optional[DBQueue] = None) -> list[Achievement]:
    """Active achievements of one category in insertion order"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_ACHIEVEMENT_COLUMNS} FROM achievements
                WHERE category = %s AND is_active = TRUE
                ORDER BY created_at, id
                """,
                (category.value,)
            )
            rows = await cur.fetchall()
            return [_row_to_achievement(row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_achievements_by_category")


# ==========================================
# Awards
# ==========================================

async def assign_achievement(
    user_id: int,
    achievement_id: int,
    assigned_at: datetime,
    is_secret: bool = False,
    queue: Optional[DBQueue] = None
) -> bool:
    """
    Award an achievement once per user

    Returns:
        True if a new row was written, False if the pair already existed
    """
    async def _insert(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO user_achievements (user_id, achievement_id, assigned_at, is_secret)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id, achievement_id) DO NOTHING
                """,
                (user_id, achievement_id, assigned_at, is_secret)
            )
            inserted = cur.rowcount == 1
        await conn.commit()
        return inserted

    return await (queue or db_queue).execute(_insert, operation="assign_achievement")


async def get_user_achievements(user_id: int, queue: Optional[DBQueue] = None) -> list[UserAchievement]:
    """User's awards, earliest first"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_USER_ACHIEVEMENT_COLUMNS}
                FROM user_achievements ua
                WHERE ua.user_id = %s
                ORDER BY ua.assigned_at, ua.id
                """,
                (user_id,)
            )
            rows = await cur.fetchall()
            return [_row_to_user_achievement(row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_user_achievements")


async def get_user_achievements_by_category(
    user_id: int,
    category: AchievementCategory,
    queue: Optional[DBQueue] = None
) -> list[UserAchievement]:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_USER_ACHIEVEMENT_COLUMNS}
                FROM user_achievements ua
                JOIN achievements a ON ua.achievement_id = a.id
                WHERE ua.user_id = %s AND a.category = %s
                ORDER BY ua.assigned_at, ua.id
                """,
                (user_id, category.value)
            )
            rows = await cur.fetchall()
            return [_row_to_user_achievement(row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_user_achievements_by_category")


async def count_user_achievements(user_id: int, queue: Optional[DBQueue] = None) -> int:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT COUNT(*) AS count FROM user_achievements WHERE user_id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    return await (queue or db_queue).execute(_query, operation="count_user_achievements")


async def has_user_achievement(user_id: int, achievement_id: int, queue: Optional[DBQueue] = None) -> bool:
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT 1 FROM user_achievements
                WHERE user_id = %s AND achievement_id = %s
                """,
                (user_id, achievement_id)
            )
            return await cur.fetchone() is not None

    return await (queue or db_queue).execute(_query, operation="has_user_achievement")


async def get_achievement_holders(achievement_id: int, queue: Optional[DBQueue] = None) -> list[int]:
    """Holder user ids, earliest award first"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id FROM user_achievements
                WHERE achievement_id = %s
                ORDER BY assigned_at, id
                """,
                (achievement_id,)
            )
            rows = await cur.fetchall()
            return [row["user_id"] for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_achievement_holders")


# ==========================================
# Aggregates
# ==========================================

async def get_achievement_user_counts(queue: Optional[DBQueue] = None) -> dict[int, int]:
    """
    Award count per catalog achievement

    Returns:
        {achievement_id: user_count}, including achievements nobody holds
    """
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT a.id AS achievement_id, COUNT(ua.id) AS user_count
                FROM achievements a
                LEFT JOIN user_achievements ua ON a.id = ua.achievement_id
                GROUP BY a.id
                """
            )
            rows = await cur.fetchall()
            return {row["achievement_id"]: row["user_count"] for row in rows}

    return await (queue or db_queue).execute(_query, operation="get_achievement_user_counts")


async def count_users_with_achievements(queue: Optional[DBQueue] = None) -> int:
    """Distinct users holding at least one achievement"""
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT COUNT(DISTINCT user_id) AS count FROM user_achievements"
            )
            row = await cur.fetchone()
            return row["count"] if row else 0

    return await (queue or db_queue).execute(_query, operation="count_users_with_achievements")


async def get_user_achievement_counts(queue: Optional[DBQueue] = None) -> list[dict]:
    """
    Award count per user

    Returns:
        [{'user_id': int, 'achievement_count': int, 'first_assigned_at': datetime}]
    """
    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id,
                       COUNT(*) AS achievement_count,
                       MIN(assigned_at) AS first_assigned_at
                FROM user_achievements
                GROUP BY user_id
                """
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]

    return await (queue or db_queue).execute(_query, operation="get_user_achievement_counts")
