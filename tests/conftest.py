"""Global test fixtures and utilities for quest-analytics tests"""
import pytest
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
from unittest.mock import AsyncMock, MagicMock

from quest_analytics.db import queries
from quest_analytics.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementType,
    UserAchievement,
)
from quest_analytics.models.progress import ProgressStatus, UserProgress
from quest_analytics.models.statistics import (
    AsteriskStepStats,
    DropoffPoint,
    HintStepStats,
    LeaderboardEntry,
    SpeedrunRecord,
    StubbornRecord,
)
from quest_analytics.models.step import Step
from quest_analytics.models.user import User

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# In-memory store
# ============================================================================

class FakeQuestStore:
    """
    In-memory stand-in for quest_analytics.db.queries

    Mirrors the ordering and aggregation the SQL queries perform so services
    can be tested against realistic data without a database.
    """

    def __init__(self):
        self.achievements: list[Achievement] = []
        self.awards: list[UserAchievement] = []
        self.users: dict[int, User] = {}
        self.steps: dict[int, Step] = {}
        self.progress: dict[tuple[int, int], UserProgress] = {}
        self.answers: list[tuple[int, int, int, datetime, bool]] = []
        self._next_achievement_id = 1
        self._next_award_id = 1
        self._next_answer_id = 1

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def add_user(self, user_id: int, created_at: Optional[datetime] = None, **kwargs) -> User:
        user = User(id=user_id, created_at=created_at or BASE_TIME, **kwargs)
        self.users[user_id] = user
        return user

    def add_step(self, step_id: int, step_order: int, **kwargs) -> Step:
        step = Step(id=step_id, step_order=step_order, text=f"Step {step_order}", **kwargs)
        self.steps[step_id] = step
        return step

    def add_answer(self, user_id: int, step_id: int, created_at: datetime, hint_used: bool = False) -> None:
        self.answers.append((self._next_answer_id, user_id, step_id, created_at, hint_used))
        self._next_answer_id += 1

    def set_progress(
        self,
        user_id: int,
        step_id: int,
        status: ProgressStatus,
        completed_at: Optional[datetime] = None
    ) -> None:
        self.progress[(user_id, step_id)] = UserProgress(
            user_id=user_id, step_id=step_id, status=status, completed_at=completed_at
        )

    def add_achievement(self, key: str, category: AchievementCategory = AchievementCategory.PROGRESS,
                        is_active: bool = True) -> Achievement:
        achievement = Achievement(
            id=self._next_achievement_id,
            key=key,
            name=key.replace("_", " ").title(),
            description=f"{key} description",
            category=category,
            type=AchievementType.PROGRESS_BASED,
            is_active=is_active,
            created_at=BASE_TIME + timedelta(seconds=self._next_achievement_id),
        )
        self._next_achievement_id += 1
        self.achievements.append(achievement)
        return achievement

    def award(self, user_id: int, key: str, assigned_at: datetime, is_secret: bool = False) -> None:
        achievement = self._by_key(key)
        self.awards.append(UserAchievement(
            id=self._next_award_id,
            user_id=user_id,
            achievement_id=achievement.id,
            assigned_at=assigned_at,
            is_secret=is_secret,
        ))
        self._next_award_id += 1

    def _by_key(self, key: str) -> Optional[Achievement]:
        return next((a for a in self.achievements if a.key == key), None)

    def _by_id(self, achievement_id: int) -> Optional[Achievement]:
        return next((a for a in self.achievements if a.id == achievement_id), None)

    def _catalog(self) -> list[Achievement]:
        return sorted(self.achievements, key=lambda a: (a.created_at, a.id))

    def _awards_sorted(self) -> list[UserAchievement]:
        return sorted(self.awards, key=lambda ua: (ua.assigned_at, ua.id))

    def _live_step(self, step_id: int) -> Optional[Step]:
        step = self.steps.get(step_id)
        if step is None or not step.is_active or step.is_deleted:
            return None
        return step

    # ------------------------------------------------------------------
    # Achievement queries
    # ------------------------------------------------------------------

    async def create_achievement(self, achievement: Achievement, queue=None) -> Optional[dict]:
        if self._by_key(achievement.key) is not None:
            return None
        created_at = BASE_TIME + timedelta(seconds=self._next_achievement_id)
        stored = achievement.model_copy(
            update={"id": self._next_achievement_id, "created_at": created_at}
        )
        self._next_achievement_id += 1
        self.achievements.append(stored)
        return {"id": stored.id, "created_at": created_at}

    async def update_achievement(self, achievement: Achievement, queue=None) -> int:
        for i, existing in enumerate(self.achievements):
            if existing.id == achievement.id:
                self.achievements[i] = achievement.model_copy(
                    update={"key": existing.key, "created_at": existing.created_at}
                )
                return 1
        return 0

    async def get_achievement_by_id(self, achievement_id: int, queue=None) -> Optional[Achievement]:
        return self._by_id(achievement_id)

    async def get_achievement_by_key(self, key: str, queue=None) -> Optional[Achievement]:
        return self._by_key(key)

    async def get_all_achievements(self, queue=None) -> list[Achievement]:
        return self._catalog()

    async def get_active_achievements(self, queue=None) -> list[Achievement]:
        return [a for a in self._catalog() if a.is_active]

    async def get_achievements_by_category(self, category: AchievementCategory, queue=None) -> list[Achievement]:
        return [a for a in self._catalog() if a.is_active and a.category == category]

    async def assign_achievement(self, user_id: int, achievement_id: int,
                                 assigned_at: datetime, is_secret: bool = False, queue=None) -> bool:
        if any(ua.user_id == user_id and ua.achievement_id == achievement_id for ua in self.awards):
            return False
        self.awards.append(UserAchievement(
            id=self._next_award_id,
            user_id=user_id,
            achievement_id=achievement_id,
            assigned_at=assigned_at,
            is_secret=is_secret,
        ))
        self._next_award_id += 1
        return True

    async def get_user_achievements(self, user_id: int, queue=None) -> list[UserAchievement]:
        return [ua for ua in self._awards_sorted() if ua.user_id == user_id]

    async def get_user_achievements_by_category(self, user_id: int,
                                                category: AchievementCategory, queue=None) -> list[UserAchievement]:
        return [
            ua for ua in self._awards_sorted()
            if ua.user_id == user_id and self._by_id(ua.achievement_id).category == category
        ]

    async def count_user_achievements(self, user_id: int, queue=None) -> int:
        return sum(1 for ua in self.awards if ua.user_id == user_id)

    async def has_user_achievement(self, user_id: int, achievement_id: int, queue=None) -> bool:
        return any(ua.user_id == user_id and ua.achievement_id == achievement_id for ua in self.awards)

    async def get_achievement_holders(self, achievement_id: int, queue=None) -> list[int]:
        return [ua.user_id for ua in self._awards_sorted() if ua.achievement_id == achievement_id]

    async def get_achievement_user_counts(self, queue=None) -> dict[int, int]:
        counts = {a.id: 0 for a in self.achievements}
        for ua in self.awards:
            counts[ua.achievement_id] += 1
        return counts

    async def count_users_with_achievements(self, queue=None) -> int:
        return len({ua.user_id for ua in self.awards})

    async def get_user_achievement_counts(self, queue=None) -> list[dict]:
        grouped: dict[int, dict] = {}
        for ua in self.awards:
            entry = grouped.setdefault(ua.user_id, {
                "user_id": ua.user_id,
                "achievement_count": 0,
                "first_assigned_at": ua.assigned_at,
            })
            entry["achievement_count"] += 1
            entry["first_assigned_at"] = min(entry["first_assigned_at"], ua.assigned_at)
        # Hash order, like GROUP BY without ORDER BY
        return list(grouped.values())

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    async def get_users_by_ids(self, user_ids: Iterable[int], queue=None) -> dict[int, User]:
        return {uid: self.users[uid] for uid in user_ids if uid in self.users}

    # ------------------------------------------------------------------
    # Answer queries
    # ------------------------------------------------------------------

    def _user_answers(self, user_id: int):
        return sorted(
            (a for a in self.answers if a[1] == user_id),
            key=lambda a: (a[3], a[0])
        )

    async def get_user_answer_times(self, user_id: int, queue=None) -> list[datetime]:
        return [a[3] for a in self._user_answers(user_id)]

    async def count_user_answers(self, user_id: int, queue=None) -> int:
        return len(self._user_answers(user_id))

    async def count_user_answers_by_step(self, user_id: int, queue=None) -> dict[int, int]:
        counts: dict[int, int] = {}
        for _, _, step_id, _, _ in self._user_answers(user_id):
            counts[step_id] = counts.get(step_id, 0) + 1
        return counts

    def _last_active_order(self) -> int:
        return max((s.step_order for s in self.steps.values() if s.is_active and not s.is_deleted), default=0)

    def _live_answers(self):
        return [a for a in self.answers if self._live_step(a[2]) is not None]

    async def get_hint_stats(self, limit: Optional[int], queue=None) -> list[HintStepStats]:
        counts: dict[int, int] = {}
        for _, _, step_id, _, hint_used in self._live_answers():
            if hint_used:
                counts[step_id] = counts.get(step_id, 0) + 1
        rows = [
            HintStepStats(step_order=self.steps[sid].step_order, step_text=self.steps[sid].text, hint_count=n)
            for sid, n in counts.items()
        ]
        rows.sort(key=lambda r: (-r.hint_count, r.step_order))
        return rows[:limit]

    async def get_speedruns(self, limit: Optional[int], queue=None) -> list[SpeedrunRecord]:
        last_step = self._last_active_order()
        per_user: dict[int, list] = {}
        for _, user_id, step_id, created_at, _ in self._live_answers():
            per_user.setdefault(user_id, []).append((created_at, self.steps[step_id].step_order))

        rows = []
        for user_id, answers in per_user.items():
            times = [t for t, _ in answers]
            duration = round((max(times) - min(times)).total_seconds() / 60, 1)
            if duration <= 0:
                continue
            max_step = max(order for _, order in answers)
            user = self.users[user_id]
            rows.append(SpeedrunRecord(
                first_name=user.first_name,
                username=user.username,
                duration_min=duration,
                max_step=max_step,
                is_finisher=last_step > 0 and max_step >= last_step,
            ))
        rows.sort(key=lambda r: (-r.max_step, r.duration_min))
        return rows[:limit]

    async def get_stubborn_records(self, limit: Optional[int], queue=None) -> list[StubbornRecord]:
        counts: dict[tuple[int, int], int] = {}
        for _, user_id, step_id, _, _ in self.answers:
            counts[(user_id, step_id)] = counts.get((user_id, step_id), 0) + 1
        rows = [
            StubbornRecord(
                first_name=self.users[uid].first_name,
                username=self.users[uid].username,
                step_order=self.steps[sid].step_order,
                attempts=n,
            )
            for (uid, sid), n in counts.items()
        ]
        rows.sort(key=lambda r: (-r.attempts, r.step_order))
        return rows[:limit]

    async def get_dropoff_points(self, limit: Optional[int], queue=None) -> list[DropoffPoint]:
        last_steps: dict[int, int] = {}
        starters: dict[int, set] = {}
        for _, user_id, step_id, _, _ in self._live_answers():
            order = self.steps[step_id].step_order
            last_steps[user_id] = max(last_steps.get(user_id, 0), order)
            starters.setdefault(order, set()).add(user_id)

        final_step = self._last_active_order()
        texts = {s.step_order: s.text for s in self.steps.values()}
        rows = []
        for order, users in starters.items():
            dropped = sum(1 for last in last_steps.values() if last == order)
            if order == final_step or dropped == 0:
                continue
            rows.append(DropoffPoint(
                step_order=order,
                step_text=texts[order],
                dropped=dropped,
                starters=len(users),
                drop_pct=round(100.0 * dropped / len(users), 1),
            ))
        rows.sort(key=lambda r: (-r.drop_pct, -r.dropped))
        return rows[:limit]

    # ------------------------------------------------------------------
    # Progress queries
    # ------------------------------------------------------------------

    async def get_user_progress(self, user_id: int, queue=None) -> list[UserProgress]:
        return [p for (uid, _), p in self.progress.items() if uid == user_id]

    async def count_progress_by_step(self, step_id: int, status: ProgressStatus, queue=None) -> int:
        return sum(1 for p in self.progress.values() if p.step_id == step_id and p.status == status)

    async def count_answered_steps(self, user_id: int, queue=None) -> int:
        return sum(
            1 for p in self.progress.values()
            if p.user_id == user_id
            and p.status in (ProgressStatus.APPROVED, ProgressStatus.SKIPPED)
            and self._live_step(p.step_id) is not None
        )

    def _best_approved(self, user_id: int):
        best = None
        for p in self.progress.values():
            step = self._live_step(p.step_id)
            if p.user_id != user_id or p.status != ProgressStatus.APPROVED or step is None:
                continue
            if best is None or step.step_order > best[0]:
                best = (step.step_order, p.completed_at)
        return best

    async def get_leaderboard_entries(self, queue=None) -> list[LeaderboardEntry]:
        entries = []
        for user in self.users.values():
            best = self._best_approved(user.id)
            entries.append(LeaderboardEntry(
                user=user,
                max_step=best[0] if best else 0,
                reached_at=(best[1] if best and best[1] else user.created_at),
            ))
        return entries

    async def get_user_max_step(self, user_id: int, queue=None) -> int:
        best = self._best_approved(user_id)
        return best[0] if best else 0

    async def count_approved_asterisk_steps(self, user_id: int, queue=None) -> int:
        return sum(
            1 for p in self.progress.values()
            if p.user_id == user_id
            and p.status == ProgressStatus.APPROVED
            and self._live_step(p.step_id) is not None
            and self.steps[p.step_id].is_asterisk
        )

    # ------------------------------------------------------------------
    # Step queries
    # ------------------------------------------------------------------

    async def get_active_steps(self, queue=None) -> list[Step]:
        return sorted(
            (s for s in self.steps.values() if s.is_active and not s.is_deleted),
            key=lambda s: s.step_order
        )

    async def count_active_steps(self, queue=None) -> int:
        return len(await self.get_active_steps())

    async def get_step_orders(self, step_ids: Iterable[int], queue=None) -> dict[int, int]:
        return {sid: self.steps[sid].step_order for sid in step_ids if sid in self.steps}

    async def count_asterisk_steps(self, queue=None) -> int:
        return sum(1 for s in await self.get_active_steps() if s.is_asterisk)

    async def get_asterisk_step_stats(self, queue=None) -> list[AsteriskStepStats]:
        stats = []
        for step in await self.get_active_steps():
            if not step.is_asterisk:
                continue
            stats.append(AsteriskStepStats(
                step_id=step.id,
                step_order=step.step_order,
                text=step.text,
                answered_count=await self.count_progress_by_step(step.id, ProgressStatus.APPROVED),
                skipped_count=await self.count_progress_by_step(step.id, ProgressStatus.SKIPPED),
            ))
        return stats


@pytest.fixture
def fake_store(monkeypatch):
    """Patch every query function with an in-memory FakeQuestStore"""
    store = FakeQuestStore()
    for name in queries.__all__:
        monkeypatch.setattr(queries, name, getattr(store, name))
    return store


# ============================================================================
# Database Fixtures
# ============================================================================

class FakeQueue:
    """Runs storage tasks inline against a mock connection"""

    def __init__(self, conn):
        self.conn = conn
        self.operations: list[str] = []

    async def execute(self, task, operation: str = "query"):
        self.operations.append(operation)
        return await task(self.conn)


@pytest.fixture
def mock_db_cursor():
    """Mock database cursor with standard query results"""
    cursor = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    cursor.execute = AsyncMock()
    cursor.rowcount = 0
    return cursor


@pytest.fixture
def mock_db_connection(mock_db_cursor):
    """Mock dict_row connection whose cursor() yields mock_db_cursor"""
    conn = MagicMock()
    conn.cursor.return_value.__aenter__.return_value = mock_db_cursor
    conn.cursor.return_value.__aexit__.return_value = False
    conn.commit = AsyncMock()
    conn.rollback = AsyncMock()
    return conn


@pytest.fixture
def fake_queue(mock_db_connection):
    return FakeQueue(mock_db_connection)


@pytest.fixture
def fake_database():
    """Database stand-in whose connection() yields a plain object"""
    database = MagicMock()
    conn = object()

    @asynccontextmanager
    async def _connection():
        yield conn

    database.connection = _connection
    database.conn = conn
    return database

