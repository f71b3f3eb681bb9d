"""
StatisticsService - Quest Progress Leaderboard and Quest Statistics

Ranks users by quest progress, reports per-step completion counts and the
per-step analytics shown to quest admins.

Progress metric: the highest step_order among a user's approved progress rows
on active, non-deleted steps. Ranking order:
1. higher max step first
2. earlier time reaching that step (registration time if no step approved)
3. earlier registration
4. lower user id
"""

import logging
from typing import List, Optional, Tuple

from quest_analytics.db import queries
from quest_analytics.db.queue import DBQueue, db_queue
from quest_analytics.exceptions import NotFoundError
from quest_analytics.models.progress import ProgressStatus
from quest_analytics.models.statistics import (
    AsteriskStepStats,
    DropoffPoint,
    ExtendedStatistics,
    HintStepStats,
    LeaderboardEntry,
    QuestStatistics,
    SpeedrunRecord,
    StepStats,
    StubbornRecord,
    UserProgressSummary,
    UserStatisticsWithAchievements,
)
from quest_analytics.models.user import User
from quest_analytics.observability.metrics import analytics_computations_total
from quest_analytics.services.achievement_service import AchievementService

logger = logging.getLogger(__name__)


def leaderboard_sort_key(entry: LeaderboardEntry):
    """Sort key implementing the leaderboard order (ascending = better)"""
    return (-entry.max_step, entry.reached_at, entry.user.created_at, entry.user.id)


def rank_leaderboard(entries: List[LeaderboardEntry]) -> List[LeaderboardEntry]:
    return sorted(entries, key=leaderboard_sort_key)


class StatisticsService:
    """
    Service for progress rankings and quest statistics.

    Responsibilities:
    - Leaderboard ordering and a user's position in it
    - Per-user progress metric, completion percentage and asterisk progress
    - Approved completions per active step, alone or with award totals
    - Per-step analytics: hints, speedruns, retries, drop-off points
    """

    def __init__(
        self,
        queue: Optional[DBQueue] = None,
        achievement_service: Optional[AchievementService] = None
    ):
        """
        Initialize StatisticsService.

        Args:
            queue: Storage queue every query runs on (defaults to the global one)
            achievement_service: Source of the achievement ranking; one sharing
                this queue is created if omitted
        """
        self.queue = queue or db_queue
        self.achievement_service = achievement_service or AchievementService(self.queue)
        logger.debug("StatisticsService initialized")

    # ==========================================
    # Leaderboard
    # ==========================================

    async def get_leaders(self) -> List[User]:
        """All registered users in leaderboard order"""
        entries = await queries.get_leaderboard_entries(queue=self.queue)
        analytics_computations_total.labels(kind="leaderboard").inc()
        return [entry.user for entry in rank_leaderboard(entries)]

    async def get_user_leaderboard_position(self, user_id: int) -> Tuple[int, int]:
        """
        Position of a user on the leaderboard.

        Returns:
            (position, total_users): position is 1-indexed, total_users counts
            every registered user

        Raises:
            NotFoundError: User is not registered
        """
        entries = await queries.get_leaderboard_entries(queue=self.queue)

        target = next((e for e in entries if e.user.id == user_id), None)
        if target is None:
            raise NotFoundError(
                f"User {user_id} not found",
                record_type="User",
                record_id=user_id,
                operation="get_user_leaderboard_position"
            )

        target_key = leaderboard_sort_key(target)
        ahead = sum(1 for e in entries if leaderboard_sort_key(e) < target_key)

        analytics_computations_total.labels(kind="leaderboard_position").inc()
        return ahead + 1, len(entries)

    # ==========================================
    # Per-user progress
    # ==========================================

    async def get_user_max_step(self, user_id: int) -> int:
        return await queries.get_user_max_step(user_id, queue=self.queue)

    async def get_user_progress(self, user_id: int) -> UserProgressSummary:
        """Approved or skipped active steps against all active steps"""
        active_steps = await queries.count_active_steps(queue=self.queue)
        answered_steps = await queries.count_answered_steps(user_id, queue=self.queue)

        percentage = 0.0
        if active_steps > 0:
            percentage = answered_steps / active_steps * 100

        return UserProgressSummary(
            answered_steps=answered_steps,
            active_steps=active_steps,
            percentage=percentage,
        )

    async def get_user_achievement_count(self, user_id: int) -> int:
        return await queries.count_user_achievements(user_id, queue=self.queue)

    async def get_user_statistics_with_achievements(self, user_id: int) -> UserStatisticsWithAchievements:
        """
        Progress, leaderboard place and award count for one user.

        Raises:
            NotFoundError: User is not registered
        """
        progress = await self.get_user_progress(user_id)
        position, total_users = await self.get_user_leaderboard_position(user_id)
        achievement_count = await self.get_user_achievement_count(user_id)

        return UserStatisticsWithAchievements(
            answered_steps=progress.answered_steps,
            total_steps=progress.active_steps,
            progress_percentage=progress.percentage,
            leaderboard_position=position,
            total_users=total_users,
            achievement_count=achievement_count,
        )

    async def get_user_asterisk_stats(self, user_id: int) -> Tuple[int, int]:
        """
        Asterisk (optional) step progress.

        Returns:
            (answered, total): approved active asterisk steps and all active
            asterisk steps
        """
        total = await queries.count_asterisk_steps(queue=self.queue)
        answered = await queries.count_approved_asterisk_steps(user_id, queue=self.queue)
        return answered, total

    # ==========================================
    # Quest-wide statistics
    # ==========================================

    async def calculate_step_stats(self) -> List[StepStats]:
        """Approved completions per active step in display order"""
        steps = await queries.get_active_steps(queue=self.queue)

        stats = []
        for step in steps:
            count = await queries.count_progress_by_step(step.id, ProgressStatus.APPROVED, queue=self.queue)
            stats.append(StepStats(
                step_id=step.id,
                step_order=step.step_order,
                text=step.text,
                count=count,
            ))

        analytics_computations_total.labels(kind="step_stats").inc()
        return stats

    async def calculate_stats(self) -> QuestStatistics:
        """Step stats and the full leaderboard"""
        step_stats = await self.calculate_step_stats()
        leaders = await self.get_leaders()
        return QuestStatistics(step_stats=step_stats, leaders=leaders)

    async def calculate_extended_stats(self, top_limit: int = 10) -> ExtendedStatistics:
        """
        Quest statistics plus award totals.

        total_achievements is the number of award rows across the catalog,
        achievements_by_user maps every user holding something to their count,
        and top_achievement_users is the head of the achievement ranking.
        """
        basic = await self.calculate_stats()

        award_counts = await queries.get_achievement_user_counts(queue=self.queue)
        user_counts = await queries.get_user_achievement_counts(queue=self.queue)
        top_users = await self.achievement_service.get_users_with_most_achievements(top_limit)

        analytics_computations_total.labels(kind="extended_stats").inc()
        return ExtendedStatistics(
            step_stats=basic.step_stats,
            leaders=basic.leaders,
            total_achievements=sum(award_counts.values()),
            achievements_by_user={c["user_id"]: c["achievement_count"] for c in user_counts},
            top_achievement_users=top_users,
        )

    async def get_asterisk_steps_stats(self) -> List[AsteriskStepStats]:
        """Approved and skipped counts for each active asterisk step"""
        stats = await queries.get_asterisk_step_stats(queue=self.queue)
        analytics_computations_total.labels(kind="asterisk_stats").inc()
        return stats

    # ==========================================
    # Per-step analytics
    # ==========================================

    async def get_hint_stats(self, limit: int = 10) -> List[HintStepStats]:
        """Active steps with the most hinted answers; limit <= 0 means no cap"""
        return await queries.get_hint_stats(_sql_limit(limit), queue=self.queue)

    async def get_speedruns(self, limit: int = 10) -> List[SpeedrunRecord]:
        """
        Fastest players ordered by furthest step reached, then by duration.

        is_finisher marks players whose furthest step is the last active one.
        """
        return await queries.get_speedruns(_sql_limit(limit), queue=self.queue)

    async def get_stubborn_records(self, limit: int = 10) -> List[StubbornRecord]:
        return await queries.get_stubborn_records(_sql_limit(limit), queue=self.queue)

    async def get_dropoff_points(self, limit: int = 10) -> List[DropoffPoint]:
        """
        Steps where players stopped, by share of that step's starters.

        The last active step is excluded since stopping there means finishing.
        """
        return await queries.get_dropoff_points(_sql_limit(limit), queue=self.queue)


def _sql_limit(limit: int) -> Optional[int]:
    return limit if limit > 0 else None
