"""
AchievementService - Achievement Catalog and Analytics

Owns the achievement catalog (create/update/list), idempotent awards and the
read side: per-user achievements, category summaries, holder lists, the
achievement ranking and global popularity statistics.

Every aggregate is recomputed from stored rows on each call. An aggregate
built from several queries is not a consistent snapshot: an award written
between two of its reads is visible to one and not the other.
"""

import logging
from typing import List, Optional
from datetime import datetime, timezone

from quest_analytics.db import queries
from quest_analytics.db.queue import DBQueue, db_queue
from quest_analytics.exceptions import NotFoundError, ValidationError
from quest_analytics.models.achievement import (
    Achievement,
    AchievementCategory,
    AchievementType,
    UserAchievement,
)
from quest_analytics.models.statistics import (
    AchievementPopularity,
    AchievementStatistics,
    AchievementSummary,
    UserAchievementDetails,
    UserAchievementRanking,
)
from quest_analytics.observability.metrics import analytics_computations_total

logger = logging.getLogger(__name__)


class AchievementService:
    """
    Service for the achievement catalog and achievement analytics.

    Responsibilities:
    - Catalog lifecycle (create, update, activate/deactivate)
    - Idempotent awarding of achievements to users
    - Per-user achievement queries and summaries
    - Global popularity statistics and the achievement-count ranking
    """

    def __init__(self, queue: Optional[DBQueue] = None):
        """
        Initialize AchievementService.

        Args:
            queue: Storage queue every query runs on (defaults to the global one)
        """
        self.queue = queue or db_queue
        logger.debug("AchievementService initialized")

    # ==========================================
    # Catalog
    # ==========================================

    async def create_achievement(self, achievement: Achievement) -> Achievement:
        """
        Add an achievement to the catalog.

        Args:
            achievement: Definition to store; its id is ignored

        Returns:
            The stored achievement with its assigned id

        Raises:
            ValidationError: Empty key/name, bad category/type or duplicate key
        """
        self._validate(achievement, operation="create_achievement")

        existing = await queries.get_achievement_by_key(achievement.key, queue=self.queue)
        if existing is not None:
            raise ValidationError(
                f"Achievement key '{achievement.key}' already exists",
                field="key",
                value=achievement.key,
                operation="create_achievement"
            )

        created = await queries.create_achievement(achievement, queue=self.queue)
        if created is None:
            # Lost a race with a concurrent insert of the same key
            raise ValidationError(
                f"Achievement key '{achievement.key}' already exists",
                field="key",
                value=achievement.key,
                operation="create_achievement"
            )

        stored = achievement.model_copy(
            update={"id": created["id"], "created_at": created.get("created_at")}
        )
        logger.info(f"Created achievement {stored.key} (id={stored.id}, category={stored.category.value})")
        return stored

    async def update_achievement(self, achievement: Achievement) -> None:
        """
        Replace every mutable field of an existing achievement.

        The key is immutable and is not written.

        Raises:
            ValidationError: Empty name or bad category/type
            NotFoundError: No achievement with this id
        """
        self._validate(achievement, operation="update_achievement")

        updated = await queries.update_achievement(achievement, queue=self.queue)
        if updated == 0:
            raise NotFoundError(
                f"Achievement {achievement.id} not found",
                record_type="Achievement",
                record_id=achievement.id,
                operation="update_achievement"
            )
        logger.info(f"Updated achievement {achievement.id} (active={achievement.is_active})")

    async def get_achievement_by_key(self, key: str) -> Achievement:
        achievement = await queries.get_achievement_by_key(key, queue=self.queue)
        if achievement is None:
            raise NotFoundError(
                f"Achievement '{key}' not found",
                record_type="Achievement",
                record_id=key,
                operation="get_achievement_by_key"
            )
        return achievement

    async def get_achievement_by_id(self, achievement_id: int) -> Achievement:
        achievement = await queries.get_achievement_by_id(achievement_id, queue=self.queue)
        if achievement is None:
            raise NotFoundError(
                f"Achievement {achievement_id} not found",
                record_type="Achievement",
                record_id=achievement_id,
                operation="get_achievement_by_id"
            )
        return achievement

    async def get_all_achievements(self) -> List[Achievement]:
        """Whole catalog, oldest first"""
        return await queries.get_all_achievements(queue=self.queue)

    async def get_active_achievements(self) -> List[Achievement]:
        """Catalog entries visible to users, oldest first"""
        return await queries.get_active_achievements(queue=self.queue)

    async def get_achievements_by_category(self, category: AchievementCategory) -> List[Achievement]:
        return await queries.get_achievements_by_category(AchievementCategory(category), queue=self.queue)

    # ==========================================
    # Awards
    # ==========================================

    async def assign_to_user(
        self,
        user_id: int,
        achievement_key: str,
        assigned_at: Optional[datetime] = None,
        is_secret: bool = False
    ) -> bool:
        """
        Award an achievement to a user.

        Awarding an achievement the user already holds is a successful no-op.

        Returns:
            True if the award was new, False if the user already held it

        Raises:
            NotFoundError: Unknown achievement key
        """
        achievement = await self.get_achievement_by_key(achievement_key)
        awarded = await queries.assign_achievement(
            user_id,
            achievement.id,
            assigned_at or datetime.now(timezone.utc),
            is_secret,
            queue=self.queue
        )
        if awarded:
            logger.info(f"User {user_id} awarded achievement {achievement_key}")
        else:
            logger.debug(f"User {user_id} already holds achievement {achievement_key}")
        return awarded

    async def get_user_achievements(self, user_id: int) -> List[UserAchievement]:
        """User's awards ordered by award time, then insertion order"""
        return await queries.get_user_achievements(user_id, queue=self.queue)

    async def get_user_achievements_by_category(
        self,
        user_id: int,
        category: AchievementCategory
    ) -> List[UserAchievement]:
        return await queries.get_user_achievements_by_category(
            user_id, AchievementCategory(category), queue=self.queue
        )

    async def get_user_achievement_count(self, user_id: int) -> int:
        return await queries.count_user_achievements(user_id, queue=self.queue)

    async def has_user_achievement(self, user_id: int, achievement_key: str) -> bool:
        """
        Check whether a user holds an achievement.

        An unknown key is a negative answer, not an error.
        """
        achievement = await queries.get_achievement_by_key(achievement_key, queue=self.queue)
        if achievement is None:
            return False
        return await queries.has_user_achievement(user_id, achievement.id, queue=self.queue)

    async def get_achievement_holders(self, achievement_key: str) -> List[int]:
        """
        User ids holding an achievement, earliest award first.

        Raises:
            NotFoundError: Unknown achievement key
        """
        achievement = await self.get_achievement_by_key(achievement_key)
        return await queries.get_achievement_holders(achievement.id, queue=self.queue)

    # ==========================================
    # Aggregates
    # ==========================================

    async def get_user_achievement_summary(self, user_id: int) -> AchievementSummary:
        """
        Group a user's achievements by category.

        Categories the user has nothing in are left out of the mapping;
        total_count still counts every award row.
        """
        user_achievements = await queries.get_user_achievements(user_id, queue=self.queue)
        catalog = {a.id: a for a in await queries.get_all_achievements(queue=self.queue)}

        summary = AchievementSummary(total_count=len(user_achievements))
        for ua in user_achievements:
            achievement = catalog.get(ua.achievement_id)
            if achievement is None:
                logger.warning(
                    f"User {user_id} holds achievement {ua.achievement_id} missing from the catalog"
                )
                continue

            summary.achievements_by_category.setdefault(achievement.category, []).append(
                UserAchievementDetails(
                    achievement=achievement,
                    assigned_at=ua.assigned_at,
                    is_secret=ua.is_secret,
                )
            )

        analytics_computations_total.labels(kind="achievement_summary").inc()
        return summary

    async def get_achievement_statistics(self) -> AchievementStatistics:
        """
        Compute global achievement statistics.

        total_users counts users holding at least one achievement, so an
        achievement everyone tracked holds reports exactly 100.0 percent.
        Popular achievements only include those held by someone, sorted by
        holder count with catalog order breaking ties.
        """
        achievements = await queries.get_all_achievements(queue=self.queue)
        user_counts = await queries.get_achievement_user_counts(queue=self.queue)
        total_users = await queries.count_users_with_achievements(queue=self.queue)

        stats = AchievementStatistics(
            total_achievements=len(achievements),
            total_users=total_users,
        )

        popular = []
        for achievement in achievements:
            stats.achievements_by_category[achievement.category] = (
                stats.achievements_by_category.get(achievement.category, 0) + 1
            )

            user_count = user_counts.get(achievement.id, 0)
            stats.total_user_achievements += user_count
            if user_count < 1:
                continue

            percentage = 100.0 * user_count / total_users if total_users > 0 else 0.0
            popular.append(AchievementPopularity(
                achievement=achievement,
                user_count=user_count,
                percentage=percentage,
            ))

        # sorted() is stable, so equal counts keep catalog order
        stats.popular_achievements = sorted(popular, key=lambda p: -p.user_count)

        analytics_computations_total.labels(kind="achievement_statistics").inc()
        logger.debug(
            f"Achievement statistics: {stats.total_achievements} achievements, "
            f"{stats.total_user_achievements} awards across {total_users} users"
        )
        return stats

    async def get_users_with_most_achievements(self, limit: int = 10) -> List[UserAchievementRanking]:
        """
        Rank users by number of achievements held.

        Ties go to the user who received their first achievement earlier,
        then to the lower user id.

        Args:
            limit: Maximum entries to return; zero or negative means no cap
        """
        counts = await queries.get_user_achievement_counts(queue=self.queue)
        counts.sort(key=lambda c: (-c["achievement_count"], c["first_assigned_at"], c["user_id"]))

        users = await queries.get_users_by_ids(
            [c["user_id"] for c in counts], queue=self.queue
        )

        rankings = []
        for entry in counts:
            user = users.get(entry["user_id"])
            if user is None:
                logger.warning(f"Skipping achievements of unknown user {entry['user_id']} in ranking")
                continue
            rankings.append(UserAchievementRanking(
                user=user,
                achievement_count=entry["achievement_count"],
            ))

        if limit > 0:
            rankings = rankings[:limit]

        analytics_computations_total.labels(kind="achievement_ranking").inc()
        return rankings

    # ==========================================
    # Helpers
    # ==========================================

    def _validate(self, achievement: Achievement, operation: str) -> None:
        if not achievement.key or not achievement.key.strip():
            raise ValidationError(
                "Achievement key is required",
                field="key",
                value=achievement.key,
                operation=operation
            )
        if not achievement.name or not achievement.name.strip():
            raise ValidationError(
                "Achievement name is required",
                field="name",
                value=achievement.name,
                operation=operation
            )
        try:
            AchievementCategory(achievement.category)
        except ValueError:
            raise ValidationError(
                f"Unknown category {achievement.category}",
                field="category",
                value=achievement.category,
                operation=operation
            )
        try:
            AchievementType(achievement.type)
        except ValueError:
            raise ValidationError(
                f"Unknown type {achievement.type}",
                field="type",
                value=achievement.type,
                operation=operation
            )
