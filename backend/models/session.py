from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from models.summary import BehaviorSummary


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class InterviewSession(BaseModel):
    id: str
    session_link: str       # opaque token the recorder sends as sessionId
    status: SessionStatus = SessionStatus.PENDING
    interviewee_name: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    behavior: Optional[BehaviorSummary] = None
    llm_summary: Optional[str] = None
