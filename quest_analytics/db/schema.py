"""Database schema for quest and achievement tables"""
import logging
from typing import Optional

from quest_analytics.db.queue import DBQueue, db_queue

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id BIGINT PRIMARY KEY,
        first_name TEXT,
        last_name TEXT,
        username TEXT,
        is_blocked BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS steps (
        id BIGSERIAL PRIMARY KEY,
        step_order INTEGER UNIQUE NOT NULL,
        text TEXT NOT NULL,
        is_active BOOLEAN DEFAULT TRUE,
        is_deleted BOOLEAN DEFAULT FALSE,
        is_asterisk BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_progress (
        user_id BIGINT NOT NULL REFERENCES users(id),
        step_id BIGINT NOT NULL REFERENCES steps(id),
        status TEXT NOT NULL DEFAULT 'pending',
        completed_at TIMESTAMPTZ,
        PRIMARY KEY (user_id, step_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_answers (
        id BIGSERIAL PRIMARY KEY,
        user_id BIGINT NOT NULL REFERENCES users(id),
        step_id BIGINT NOT NULL REFERENCES steps(id),
        text_answer TEXT,
        hint_used BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS achievements (
        id BIGSERIAL PRIMARY KEY,
        key TEXT UNIQUE NOT NULL,
        name TEXT NOT NULL,
        description TEXT NOT NULL,
        category TEXT NOT NULL,
        type TEXT NOT NULL,
        is_unique BOOLEAN DEFAULT FALSE,
        conditions JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        is_active BOOLEAN DEFAULT TRUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_achievements (
        id BIGSERIAL PRIMARY KEY,
        user_id BIGINT NOT NULL REFERENCES users(id),
        achievement_id BIGINT NOT NULL REFERENCES achievements(id),
        assigned_at TIMESTAMPTZ NOT NULL,
        is_secret BOOLEAN DEFAULT FALSE,
        UNIQUE (user_id, achievement_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_user_achievements_user_id ON user_achievements(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_user_achievements_achievement_id ON user_achievements(achievement_id)",
    "CREATE INDEX IF NOT EXISTS idx_user_achievements_assigned_at ON user_achievements(assigned_at)",
    "CREATE INDEX IF NOT EXISTS idx_achievements_category ON achievements(category)",
    "CREATE INDEX IF NOT EXISTS idx_user_answers_user_id ON user_answers(user_id, created_at)",
]


async def init_schema(queue: Optional[DBQueue] = None) -> None:
    """Create tables and indexes if missing"""

    async def _create(conn):
        async with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                await cur.execute(statement)
        await conn.commit()

    await (queue or db_queue).execute(_create, operation="init_schema")
    logger.info(f"Schema ready ({len(SCHEMA_STATEMENTS)} statements applied)")
