"""User progress models"""
from enum import Enum
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ProgressStatus(str, Enum):
    """Per-step progress status"""
    PENDING = "pending"
    WAITING_REVIEW = "waiting_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    SKIPPED = "skipped"


class UserProgress(BaseModel):
    """User's state on a single step"""
    user_id: int
    step_id: int
    status: ProgressStatus
    completed_at: Optional[datetime] = None
