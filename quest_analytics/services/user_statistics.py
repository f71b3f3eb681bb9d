"""
UserStatisticsCalculator - Per-User Performance Profile

Derives timing, accuracy, retry and leaderboard figures for one user from
their answer and progress rows.
"""

import logging
from typing import Optional
from datetime import datetime, timezone

from quest_analytics.db import queries
from quest_analytics.db.queue import DBQueue
from quest_analytics.models.progress import ProgressStatus
from quest_analytics.models.statistics import StepAttempt, UserStatistics
from quest_analytics.models.step import Step
from quest_analytics.models.user import User
from quest_analytics.observability.metrics import analytics_computations_total
from quest_analytics.services.statistics_service import StatisticsService

logger = logging.getLogger(__name__)


class UserStatisticsCalculator:
    """Builds UserStatistics for a single user"""

    def __init__(self, statistics_service: StatisticsService, queue: Optional[DBQueue] = None):
        self.statistics_service = statistics_service
        self.queue = queue or statistics_service.queue

    async def calculate(
        self,
        user: User,
        current_step: Optional[Step] = None,
        now: Optional[datetime] = None
    ) -> UserStatistics:
        """
        Calculate a user's statistics.

        Args:
            user: The user to profile
            current_step: Step the user is currently on, if any
            now: Reference time for elapsed durations (defaults to UTC now)

        Raises:
            NotFoundError: User missing from the leaderboard
            StoreError: Storage failure
        """
        now = now or datetime.now(timezone.utc)

        stats = UserStatistics(
            registration_date=user.created_at,
            time_since_registration=now - user.created_at,
        )

        answer_times = await queries.get_user_answer_times(user.id, queue=self.queue)
        if answer_times:
            stats.first_answer_time = answer_times[0]
            stats.last_answer_time = answer_times[-1]

            if len(answer_times) >= 2:
                elapsed = stats.last_answer_time - stats.first_answer_time
                stats.completion_time = elapsed
                # n answers span n-1 intervals
                stats.average_response_time = elapsed / (len(answer_times) - 1)

        stats.total_answers = await queries.count_user_answers(user.id, queue=self.queue)

        progress = await queries.get_user_progress(user.id, queue=self.queue)
        stats.approved_steps = sum(1 for p in progress if p.status == ProgressStatus.APPROVED)

        if stats.total_answers > 0:
            stats.accuracy = stats.approved_steps * 100 // stats.total_answers

        answers_by_step = await queries.count_user_answers_by_step(user.id, queue=self.queue)

        if current_step is not None and answer_times and current_step.id in answers_by_step:
            # Measured from the last answer on any step, not a per-step timer
            stats.time_on_current_step = now - stats.last_answer_time

        stats.step_attempts = await self._step_attempts(user.id, answers_by_step)

        position, total = await self.statistics_service.get_user_leaderboard_position(user.id)
        stats.leaderboard_position = position
        stats.total_users = total

        analytics_computations_total.labels(kind="user_statistics").inc()
        return stats

    async def _step_attempts(self, user_id: int, answers_by_step: dict[int, int]) -> list[StepAttempt]:
        """Steps answered more than once, labelled with their display order"""
        retried = {step_id: n for step_id, n in answers_by_step.items() if n > 1}
        if not retried:
            return []

        step_orders = await queries.get_step_orders(retried.keys(), queue=self.queue)

        attempts = []
        for step_id, count in retried.items():
            step_order = step_orders.get(step_id)
            if step_order is None:
                logger.warning(
                    f"Step {step_id} answered by user {user_id} is missing from the step catalog, "
                    f"reporting its id as the order"
                )
                step_order = step_id
            attempts.append(StepAttempt(step_id=step_id, step_order=step_order, attempts=count))

        attempts.sort(key=lambda a: (a.step_order, a.step_id))
        return attempts
