"""Quest participant model"""
from pydantic import BaseModel
from datetime import datetime


class User(BaseModel):
    """Telegram user taking part in the quest"""
    id: int
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    is_blocked: bool = False
    created_at: datetime

    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        if self.username:
            parts.append(f"@{self.username}")
        parts.append(f"[{self.id}]")
        return " ".join(parts)
