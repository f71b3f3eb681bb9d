"""Achievement catalog and award models"""
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class AchievementCategory(str, Enum):
    """Achievement categories"""
    PROGRESS = "progress"
    COMPLETION = "completion"
    SPECIAL = "special"
    HINTS = "hints"
    COMPOSITE = "composite"
    UNIQUE = "unique"


class AchievementType(str, Enum):
    """How an achievement is evaluated (opaque to analytics)"""
    PROGRESS_BASED = "progress_based"
    TIME_BASED = "time_based"
    ACTION_BASED = "action_based"
    COMPOSITE = "composite"
    UNIQUE = "unique"
    MANUAL = "manual"


class AchievementConditions(BaseModel):
    """Award criteria, stored as JSON and read by the evaluation engine"""
    correct_answers: Optional[int] = None
    completion_time_minutes: Optional[int] = None
    no_errors: Optional[bool] = None
    no_hints: Optional[bool] = None
    hint_count: Optional[int] = None
    specific_answer: Optional[str] = None
    photo_submitted: Optional[bool] = None
    consecutive_correct: Optional[int] = None
    position: Optional[int] = None
    required_achievements: Optional[list[str]] = None
    hint_on_first_task: Optional[bool] = None
    all_hints_used: Optional[bool] = None
    photo_on_text_task: Optional[bool] = None
    inactive_hours: Optional[int] = None
    post_completion: Optional[bool] = None
    completion_position: Optional[int] = None
    progress_reset: Optional[bool] = None
    text_on_image_task: Optional[bool] = None
    manual_award: Optional[bool] = None

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def from_json(cls, data: Optional[str]) -> "AchievementConditions":
        if not data:
            return cls()
        return cls.model_validate_json(data)


class Achievement(BaseModel):
    """Achievement definition"""
    id: int = 0
    key: str
    name: str
    description: str = ""
    category: AchievementCategory
    type: AchievementType
    is_unique: bool = False
    conditions: AchievementConditions = Field(default_factory=AchievementConditions)
    is_active: bool = True
    created_at: Optional[datetime] = None


class UserAchievement(BaseModel):
    """A user's award of one achievement"""
    id: int = 0
    user_id: int
    achievement_id: int
    assigned_at: datetime
    is_secret: bool = False
