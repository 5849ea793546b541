from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NotificationOut(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
