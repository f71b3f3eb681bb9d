"""
Derived statistics value types

Built fresh on every request from stored rows and discarded after use.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timedelta

from quest_analytics.models.achievement import Achievement, AchievementCategory
from quest_analytics.models.user import User


class UserAchievementDetails(BaseModel):
    """An achievement a user holds, with when it was awarded"""
    achievement: Achievement
    assigned_at: datetime
    is_secret: bool = False


class AchievementSummary(BaseModel):
    """Per-user achievements grouped by category"""
    total_count: int = 0
    achievements_by_category: dict[AchievementCategory, list[UserAchievementDetails]] = Field(default_factory=dict)


class AchievementPopularity(BaseModel):
    """Share of tracked users holding an achievement"""
    achievement: Achievement
    user_count: int
    percentage: float


class AchievementStatistics(BaseModel):
    """Global achievement aggregate"""
    total_achievements: int = 0
    total_users: int = 0
    total_user_achievements: int = 0
    achievements_by_category: dict[AchievementCategory, int] = Field(default_factory=dict)
    popular_achievements: list[AchievementPopularity] = Field(default_factory=list)


class UserAchievementRanking(BaseModel):
    """A user's place in the achievement count ranking"""
    user: User
    achievement_count: int


class StepAttempt(BaseModel):
    """A step the user answered more than once"""
    step_id: int
    step_order: int
    attempts: int


class UserStatistics(BaseModel):
    """A single user's performance profile"""
    registration_date: datetime
    time_since_registration: timedelta
    first_answer_time: Optional[datetime] = None
    last_answer_time: Optional[datetime] = None
    completion_time: Optional[timedelta] = None
    total_answers: int = 0
    approved_steps: int = 0
    accuracy: int = 0
    average_response_time: Optional[timedelta] = None
    time_on_current_step: Optional[timedelta] = None
    step_attempts: list[StepAttempt] = Field(default_factory=list)
    leaderboard_position: int = 0
    total_users: int = 0


class LeaderboardEntry(BaseModel):
    """A user's progress metric used for leaderboard ordering"""
    user: User
    max_step: int = 0
    reached_at: datetime


class StepStats(BaseModel):
    """Approved completions of one active step"""
    step_id: int
    step_order: int
    text: str
    count: int


class UserProgressSummary(BaseModel):
    """Answered active steps versus all active steps"""
    answered_steps: int
    active_steps: int
    percentage: float


class QuestStatistics(BaseModel):
    """Step completion counts together with the progress leaderboard"""
    step_stats: list[StepStats] = Field(default_factory=list)
    leaders: list[User] = Field(default_factory=list)


class ExtendedStatistics(QuestStatistics):
    """Quest statistics plus award totals and the achievement top list"""
    total_achievements: int = 0
    achievements_by_user: dict[int, int] = Field(default_factory=dict)
    top_achievement_users: list[UserAchievementRanking] = Field(default_factory=list)


class UserStatisticsWithAchievements(BaseModel):
    """Progress, leaderboard place and award count for one user"""
    answered_steps: int = 0
    total_steps: int = 0
    progress_percentage: float = 0.0
    leaderboard_position: int = 0
    total_users: int = 0
    achievement_count: int = 0


class AsteriskStepStats(BaseModel):
    """Completions and skips of one optional (asterisk) step"""
    step_id: int
    step_order: int
    text: str
    answered_count: int = 0
    skipped_count: int = 0


class HintStepStats(BaseModel):
    step_order: int
    step_text: str
    hint_count: int


class SpeedrunRecord(BaseModel):
    """Time between a user's first and last answer on active steps"""
    first_name: str = ""
    username: str = ""
    duration_min: float
    max_step: int
    is_finisher: bool = False


class StubbornRecord(BaseModel):
    """Answer count of one user on one step"""
    first_name: str = ""
    username: str = ""
    step_order: int
    attempts: int


class DropoffPoint(BaseModel):
    """Users whose furthest answered step is this one"""
    step_order: int
    step_text: str
    dropped: int
    starters: int
    drop_pct: float
