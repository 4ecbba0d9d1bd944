from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventType(IntEnum):
    """Numeric type codes carried on the wire."""
    FILE_OPEN = 100
    FILE_EDIT = 101
    FILE_SAVE = 102
    TAB_CHANGE = 103
    TEXT_EDIT = 104
    UNKNOWN = 999


class RecordingEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: int               # EventType code; unknown categories carry 999
    timestamp: int          # Unix timestamp in milliseconds, set at capture
    data: dict[str, Any] = Field(default_factory=dict)
