"""Quest step model"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class Step(BaseModel):
    """A quest task; step_order is the position shown to players"""
    id: int
    step_order: int
    text: str = ""
    is_active: bool = True
    is_deleted: bool = False
    is_asterisk: bool = False
    created_at: Optional[datetime] = None
