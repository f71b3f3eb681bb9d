"""Quest participant queries"""
import logging
from typing import Iterable, Optional

from quest_analytics.db.queue import DBQueue, db_queue
from quest_analytics.models.user import User

logger = logging.getLogger(__name__)

_USER_COLUMNS = "id, first_name, last_name, username, is_blocked, created_at"


def row_to_user(row: dict) -> User:
    return User(
        id=row["id"],
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        username=row.get("username") or "",
        is_blocked=bool(row.get("is_blocked")),
        created_at=row["created_at"],
    )


async def get_users_by_ids(user_ids: Iterable[int], queue: Optional[DBQueue] = None) -> dict[int, User]:
    """Load several users at once; unknown ids are absent from the result"""
    ids = list(user_ids)
    if not ids:
        return {}

    async def _query(conn):
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = ANY(%s)",
                (ids,)
            )
            rows = await cur.fetchall()
            return {row["id"]: row_to_user(row) for row in rows}

    return await (queue or db_queue).execute(_query, operation="get_users_by_ids")


